"""Session state and the admission checks every command runs first.

Whether a review is in progress is modelled as an explicit tagged state:
check_session() returns either Absent() or Active(session, commits), read in
one pass so callers never see a session row without its commit list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from revwalk_core.context import ReviewContext
from revwalk_core.errors import NoActiveSessionError, NotFoundError, WrongWorkingCopyError
from revwalk_store.models import Commit, Reviewer, Session
from revwalk_store.sqlite import SQLiteStore


@dataclass(frozen=True)
class Absent:
    """No review in progress."""


@dataclass(frozen=True)
class Active:
    """A review is in progress."""

    session: Session
    commits: list[Commit] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.commits)

    def position_of(self, sha: str | None) -> int | None:
        if sha is None:
            return None
        for c in self.commits:
            if c.sha == sha:
                return c.position
        return None


SessionState = Union[Absent, Active]


def check_session(store: SQLiteStore | None) -> SessionState:
    if store is None:
        return Absent()
    with store.transaction(write=False):
        session = store.get_session()
        if session is None:
            return Absent()
        return Active(session=session, commits=store.list_commits())


def require_active(store: SQLiteStore | None) -> Active:
    state = check_session(store)
    if not isinstance(state, Active):
        raise NoActiveSessionError()
    return state


def require_main_worktree(ctx: ReviewContext) -> None:
    """finish and abort tear down worktrees, so they must run from the main working copy."""
    if not ctx.git.is_main_worktree:
        raise WrongWorkingCopyError(ctx.reviewer)


def reviewer_label(name: str) -> str:
    return name or "(default)"


def current_reviewer(ctx: ReviewContext) -> Reviewer:
    reviewer = ctx.store.get_reviewer(ctx.reviewer)
    if reviewer is None:
        raise NotFoundError("reviewer", reviewer_label(ctx.reviewer)) from None
    return reviewer
