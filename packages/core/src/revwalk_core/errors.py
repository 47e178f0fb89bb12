"""Errors raised by the review engine.

Every error carries a single human-readable line. Layers that add context do
so with ``raise ... from err`` so the original failure stays reachable as
``__cause__``; the CLI joins the chain into one line for display.
"""

from __future__ import annotations

from collections.abc import Sequence


class ReviewError(Exception):
    """Base class for all review engine errors."""


class NotInRepositoryError(ReviewError):
    """No git repository could be resolved from the working directory."""

    def __init__(self, workdir: str) -> None:
        self.workdir = workdir
        super().__init__(f"not in a git repository: {workdir}")


class NoActiveSessionError(ReviewError):
    def __init__(self, message: str = "No review in progress. Start with: git revwalk start") -> None:
        super().__init__(message)


class SessionAlreadyActiveError(ReviewError):
    def __init__(self, message: str = "Review already in progress. Finish or abort first.") -> None:
        super().__init__(message)


class InvalidReferenceError(ReviewError):
    """A base or commit ref did not resolve."""

    def __init__(self, message: str, ref: str | None = None) -> None:
        self.ref = ref
        super().__init__(message)


class NoCommitsInRangeError(ReviewError):
    def __init__(self, base: str) -> None:
        self.base = base
        super().__init__(f"No commits to review between {base[:7]} and HEAD.")


class DetachedHeadError(ReviewError):
    def __init__(self) -> None:
        super().__init__("Detached HEAD. Checkout a branch first.")


class DirtyWorkingCopyError(ReviewError):
    def __init__(self, workdir: str) -> None:
        self.workdir = workdir
        super().__init__(f"Uncommitted changes in {workdir}. Commit or stash them first.")


class WrongWorkingCopyError(ReviewError):
    def __init__(self, reviewer: str) -> None:
        self.reviewer = reviewer
        super().__init__(
            f"This command must be run from the main working copy, not from reviewer worktree {reviewer!r}."
        )


class NotFoundError(ReviewError):
    """A comment, commit or reviewer id/prefix matched nothing, or more than one thing."""

    def __init__(self, kind: str, ref: str, ambiguous: bool = False) -> None:
        self.kind = kind
        self.ref = ref
        self.ambiguous = ambiguous
        reason = "is ambiguous" if ambiguous else "not found"
        super().__init__(f"{kind} {ref!r} {reason}")


class InvalidOperationError(ReviewError):
    """The request is well-formed but not allowed in the current state."""


class ExecutionError(ReviewError):
    """An external git invocation failed, timed out, or could not be launched."""

    def __init__(self, args: Sequence[str], workdir: str, cause: str) -> None:
        self.command = list(args)
        self.workdir = workdir
        self.cause = cause
        super().__init__(f"git {' '.join(self.command)} failed in {workdir}: {cause}")
