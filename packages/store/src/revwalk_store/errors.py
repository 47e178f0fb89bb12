"""Errors raised by the storage layer."""

from __future__ import annotations


class StorageError(Exception):
    """A SQLite call failed.

    ``action`` names what the store was trying to do; the underlying
    ``sqlite3.Error`` is kept as ``__cause__``.
    """

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"failed to {action}")
