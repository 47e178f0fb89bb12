"""Session lifecycle: start or join a review, report status, finish or abort.

start_review() seeds the store with the session row, the ordered commit list
and the initiating reviewer in one transaction, then moves that reviewer to
the first commit. finish_review() flattens every thread onto its root commit
as a git note; finish and abort share teardown(), which removes every trace of
the review and returns the main working copy to the reviewed branch.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass, field

from revwalk_core.comments import build_children_map
from revwalk_core.context import ReviewContext, utc_now
from revwalk_core.errors import (
    DetachedHeadError,
    DirtyWorkingCopyError,
    ExecutionError,
    InvalidOperationError,
    InvalidReferenceError,
    NoCommitsInRangeError,
    ReviewError,
    SessionAlreadyActiveError,
)
from revwalk_core.git.executor import GitExecutor
from revwalk_core.navigation import NavigationResult, navigate
from revwalk_core.notes import build_commit_note, short_sha
from revwalk_core.session import Active, check_session, require_active, require_main_worktree
from revwalk_store.errors import StorageError
from revwalk_store.models import Comment, Commit, Reviewer, Session

logger = logging.getLogger(__name__)

# A reviewer name is also its worktree directory name.
_REVIEWER_NAME_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9._-]*")


@dataclass
class StartResult:
    base: str
    base_label: str | None  # the probed branch name when the base was detected
    branch: str
    total: int
    reviewer: str
    navigation: NavigationResult
    worktree: str | None = None


@dataclass
class JoinResult:
    reviewer: str
    total: int
    worktree: str
    navigation: NavigationResult


@dataclass
class StatusResult:
    session: Session
    commits: list[Commit]
    reviewers: list[Reviewer]
    comment_counts: dict[str, int]
    current_position: int | None  # the calling reviewer's 0-based position

    def position_of(self, reviewer: Reviewer) -> int | None:
        for c in self.commits:
            if c.sha == reviewer.current_sha:
                return c.position
        return None


@dataclass
class FinishResult:
    branch: str
    comment_count: int
    commit_count: int
    annotated: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class AbortResult:
    branch: str
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Start / join
# ---------------------------------------------------------------------------


def start_review(ctx: ReviewContext, base: str | None = None, name: str | None = None):
    """Start a review, join the active one, or report status.

    Returns a StartResult, a JoinResult (active session and a reviewer name)
    or a StatusResult (active session and no arguments).
    """
    if name:
        validate_reviewer_name(name)

    state = check_session(ctx.store)
    if isinstance(state, Active):
        if name:
            if base:
                raise SessionAlreadyActiveError(
                    "Review already in progress; joining reuses its base, so drop the base argument."
                )
            return join(ctx, state, name)
        if base:
            raise SessionAlreadyActiveError()
        return status(ctx)

    try:
        branch = ctx.git.current_branch()
    except ExecutionError as err:
        raise DetachedHeadError() from err
    if not branch:
        raise DetachedHeadError()

    if not name and not ctx.git.is_clean():
        raise DirtyWorkingCopyError(ctx.git.workdir)

    base_sha, base_label = _resolve_base(ctx, base)

    try:
        shas = ctx.git.rev_list(f"{base_sha}..HEAD")
    except ExecutionError as err:
        raise ReviewError(f"failed to list commits after {base_sha[:7]}") from err
    if not shas:
        raise NoCommitsInRangeError(base_sha)

    commits = []
    for i, sha in enumerate(shas):
        try:
            subject = ctx.git.subject(sha)
        except ExecutionError as err:
            raise ReviewError(f"failed to read subject of {sha[:7]}") from err
        commits.append(Commit(sha=sha, message=subject, position=i))

    reviewer_name = name or ctx.reviewer
    nav_ctx = ctx
    worktree = None
    if name:
        worktree = ctx.worktree_path(name)
        _add_worktree(ctx, name, worktree)
        nav_ctx = ctx.for_worktree(name)

    session = Session(base_ref=base_sha, branch=branch, created_at=utc_now())
    try:
        with ctx.store.transaction() as store:
            store.insert_session(session)
            for c in commits:
                store.insert_commit(c)
            store.insert_reviewer(Reviewer(name=reviewer_name))
    except StorageError as err:
        if worktree is not None:
            _remove_worktree_quietly(ctx, worktree)
        raise ReviewError("failed to initialize review") from err

    logger.info("Review started on %s: %d commits after %s", branch, len(commits), base_sha[:7])
    state = Active(session=session, commits=commits)
    try:
        nav = navigate(nav_ctx, state, commits[0])
    except ReviewError as err:
        raise ReviewError("failed to move to the first commit") from err

    return StartResult(
        base=base_sha,
        base_label=base_label,
        branch=branch,
        total=len(commits),
        reviewer=reviewer_name,
        navigation=nav,
        worktree=worktree,
    )


def _resolve_base(ctx: ReviewContext, base: str | None) -> tuple[str, str | None]:
    if base:
        try:
            return ctx.git.rev_parse(base), None
        except ExecutionError as err:
            raise InvalidReferenceError(f"invalid ref {base!r}", ref=base) from err

    for candidate in ctx.config["base_candidates"]:
        if not ctx.git.ref_exists(candidate):
            continue
        try:
            return ctx.git.merge_base(candidate, "HEAD"), candidate
        except ExecutionError:
            logger.debug("No merge base between %s and HEAD", candidate, exc_info=True)
            continue
    raise InvalidReferenceError("Cannot detect base branch. Specify: git revwalk start <base-ref>")


def validate_reviewer_name(name: str) -> None:
    if not _REVIEWER_NAME_RE.fullmatch(name):
        raise InvalidOperationError(
            f"invalid reviewer name {name!r}: use letters, digits, '.', '_' or '-', without slashes"
        )


def _add_worktree(ctx: ReviewContext, name: str, path: str) -> None:
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        ctx.git.worktree_add(path)
    except (ExecutionError, OSError) as err:
        raise ReviewError(f"failed to create worktree for reviewer {name!r}") from err

    # git names the worktree's admin dir after the path, adding a suffix when
    # that name is taken; the reviewer is resolved from it later.
    try:
        registered = GitExecutor(path, ctx.git.timeout).reviewer
    except ReviewError as err:
        _remove_worktree_quietly(ctx, path)
        raise ReviewError(f"failed to create worktree for reviewer {name!r}") from err
    if registered != name:
        _remove_worktree_quietly(ctx, path)
        raise InvalidOperationError(
            f"git registered the worktree for reviewer {name!r} as {registered!r}; "
            "run 'git worktree prune' and try again"
        )


def _remove_worktree_quietly(ctx: ReviewContext, path: str) -> None:
    try:
        ctx.git.worktree_remove(path)
    except ExecutionError:
        logger.warning("Could not remove worktree %s", path, exc_info=True)


def join(ctx: ReviewContext, state: Active, name: str) -> JoinResult:
    """Add reviewer ``name`` to the active review with a worktree of its own."""
    if ctx.store.get_reviewer(name) is not None:
        raise InvalidOperationError(f"reviewer {name!r} has already joined this review")

    worktree = ctx.worktree_path(name)
    _add_worktree(ctx, name, worktree)
    try:
        ctx.store.insert_reviewer(Reviewer(name=name))
    except StorageError as err:
        _remove_worktree_quietly(ctx, worktree)
        raise ReviewError(f"failed to add reviewer {name!r}") from err

    logger.info("Reviewer %r joined the review", name)
    try:
        nav = navigate(ctx.for_worktree(name), state, state.commits[0])
    except ReviewError as err:
        raise ReviewError("failed to move to the first commit") from err
    return JoinResult(reviewer=name, total=state.total, worktree=worktree, navigation=nav)


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


def status(ctx: ReviewContext) -> StatusResult:
    require_active(ctx.store)
    with ctx.store.transaction(write=False) as store:
        session = store.get_session()
        commits = store.list_commits()
        reviewers = store.list_reviewers()
        comments = store.list_comments()

    counts: dict[str, int] = {}
    for c in comments:
        counts[c.commit] = counts.get(c.commit, 0) + 1

    result = StatusResult(
        session=session,
        commits=commits,
        reviewers=reviewers,
        comment_counts=counts,
        current_position=None,
    )
    for r in reviewers:
        if r.name == ctx.reviewer:
            result.current_position = result.position_of(r)
            break
    return result


# ---------------------------------------------------------------------------
# Finish / abort
# ---------------------------------------------------------------------------


def write_notes(ctx: ReviewContext, commits: list[Commit], comments: list[Comment]) -> tuple[list[str], list[str]]:
    """Append one note per commit that has threads rooted on it.

    Returns (annotated SHAs, warnings). A failed write is a warning, never an error.
    """
    children_map = build_children_map(comments)
    notes_ref = ctx.config.get("notes_ref")
    annotated: list[str] = []
    warnings: list[str] = []
    for c in commits:
        note = build_commit_note(comments, children_map, c.sha)
        if not note:
            continue
        try:
            ctx.git.notes_append(c.sha, note, notes_ref)
        except ExecutionError as err:
            msg = f"failed to write notes for {short_sha(c.sha)}: {err}"
            logger.warning(msg)
            warnings.append(msg)
            continue
        annotated.append(c.sha)
    return annotated, warnings


def finish_review(ctx: ReviewContext) -> FinishResult:
    require_main_worktree(ctx)
    state = require_active(ctx.store)
    comments = ctx.store.list_comments()

    annotated, warnings = write_notes(ctx, state.commits, comments)
    warnings.extend(teardown(ctx, state.session))
    return FinishResult(
        branch=state.session.branch,
        comment_count=len(comments),
        commit_count=state.total,
        annotated=annotated,
        warnings=warnings,
    )


def abort_review(ctx: ReviewContext) -> AbortResult:
    require_main_worktree(ctx)
    state = require_active(ctx.store)
    return AbortResult(branch=state.session.branch, warnings=teardown(ctx, state.session))


def teardown(ctx: ReviewContext, session: Session) -> list[str]:
    """Remove worktrees, restore the branch, close the store and delete the state directory.

    Every step runs even when an earlier one failed.
    """
    warnings: list[str] = []

    def warn(msg: str) -> None:
        logger.warning(msg)
        warnings.append(msg)

    try:
        reviewers = ctx.store.list_reviewers()
    except StorageError as err:
        warn(f"failed to list reviewers: {err}")
        reviewers = []

    for r in reviewers:
        if not r.name:
            continue
        path = ctx.worktree_path(r.name)
        if not os.path.exists(path):
            continue
        try:
            ctx.git.worktree_remove(path)
        except ExecutionError as err:
            warn(f"failed to remove worktree {r.name}: {err}")

    try:
        ctx.git.checkout_force(session.branch)
    except ExecutionError as err:
        warn(f"failed to checkout {session.branch}: {err}")

    try:
        ctx.store.close()
    except StorageError as err:
        warn(f"failed to close review database: {err}")

    state_dir = ctx.state_dir
    if os.path.exists(state_dir):
        try:
            shutil.rmtree(state_dir)
        except OSError as err:
            warn(f"failed to clean up review directory: {err}")

    try:
        ctx.git.run_silent("worktree", "prune")
    except ExecutionError as err:
        warn(f"failed to prune worktrees: {err}")

    return warnings
