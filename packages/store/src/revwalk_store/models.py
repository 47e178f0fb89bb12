"""Review session data models.

Plain row shapes for the four review tables. Decoupled from revwalk_core so
the store layer has no knowledge of git or of how sessions are navigated.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """The singleton row describing the review in progress."""

    base_ref: str
    branch: str
    created_at: str  # ISO-8601 UTC timestamp


@dataclass(frozen=True)
class Commit:
    """A commit under review, snapshotted at session start."""

    sha: str
    message: str
    position: int  # 0-based, contiguous, unique


@dataclass(frozen=True)
class Reviewer:
    """A reviewer and the commit their working copy currently shows.

    The empty name is the default reviewer working in the main working copy.
    """

    name: str
    current_sha: str | None = None


@dataclass(frozen=True)
class Comment:
    """A review comment. A null parent_id marks a thread root."""

    id: str
    commit: str
    body: str
    created_at: str
    created_by: str
    parent_id: str | None = None
    file: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    resolved_at: str | None = None
    resolved_by: str | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None
