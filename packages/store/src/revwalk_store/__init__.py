"""Persistence layer for revwalk review sessions."""
