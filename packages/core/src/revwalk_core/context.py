"""The dependency set shared by every review operation.

Each engine function takes a ReviewContext instead of reaching for globals:
the git executor bound to the caller's working copy, the shared store, and
the loaded configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from revwalk_core.config import DEFAULT_CONFIG, db_path, state_path, worktree_path
from revwalk_core.git.executor import GitExecutor
from revwalk_store.sqlite import SQLiteStore


@dataclass
class ReviewContext:
    git: GitExecutor
    store: SQLiteStore
    config: dict = field(default_factory=lambda: dict(DEFAULT_CONFIG))

    @property
    def reviewer(self) -> str:
        """Name of the reviewer owning the current working copy ("" for the main one)."""
        return self.git.reviewer

    @property
    def state_dir(self) -> str:
        return str(state_path(self.git.common_dir, self.config))

    @property
    def db_path(self) -> str:
        return str(db_path(self.git.common_dir, self.config))

    def worktree_path(self, name: str) -> str:
        return str(worktree_path(self.git.common_dir, self.config, name))

    def for_worktree(self, name: str) -> ReviewContext:
        """A context whose executor works inside reviewer ``name``'s worktree."""
        return replace(self, git=self.git.for_worktree(name, self.worktree_path(name)))

    def default_author(self) -> str:
        return self.config.get("author") or self.reviewer


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
