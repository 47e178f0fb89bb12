"""Review-session engine: git plumbing, navigation, comments and session lifecycle."""
