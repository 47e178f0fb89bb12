"""Commit navigation: expose one commit's change as a staged diff.

To show commit C at position p, the reviewer's working copy is force-checked
out at C's parent point (the session base for p == 0, otherwise the commit at
p - 1), then the index and tracked files are reset to C's tree. HEAD stays on
the parent, so ``git diff --staged`` shows exactly C's change while the whole
codebase sits at C's final state.

The reviewer's cursor is written only after both git steps succeed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from revwalk_core.context import ReviewContext
from revwalk_core.errors import ExecutionError, NotFoundError, ReviewError
from revwalk_core.session import Active, current_reviewer, require_active
from revwalk_store.models import Commit

logger = logging.getLogger(__name__)


@dataclass
class NavigationResult:
    done: bool = False  # advance ran past the last commit; nothing else is set
    commit: Commit | None = None
    index: int = 0  # 1-based position shown to the user
    total: int = 0
    oneline: str = ""
    stat: str = ""


def parent_ref(state: Active, target: Commit) -> str:
    if target.position == 0:
        return state.session.base_ref
    for c in state.commits:
        if c.position == target.position - 1:
            return c.sha
    raise ReviewError(f"commit list has no position {target.position - 1}")


def jump_to(ctx: ReviewContext, state: Active, target: Commit) -> None:
    """Move the calling reviewer's working copy and cursor to target."""
    parent = parent_ref(state, target)
    try:
        ctx.git.checkout_force(parent)
    except ExecutionError as err:
        raise ReviewError(f"failed to check out parent {parent[:7]}") from err
    try:
        ctx.git.read_tree_reset(target.sha)
    except ExecutionError as err:
        raise ReviewError(f"failed to read tree of {target.sha[:7]}") from err

    ctx.store.update_reviewer_current(ctx.reviewer, target.sha)
    logger.debug("Reviewer %r now at %s (position %d)", ctx.reviewer, target.sha, target.position)


def _describe(ctx: ReviewContext, state: Active, target: Commit) -> NavigationResult:
    # Display only: a failure here must not undo a completed navigation.
    try:
        oneline = ctx.git.oneline(target.sha)
    except ExecutionError:
        logger.debug("Could not read oneline for %s", target.sha, exc_info=True)
        oneline = f"{target.sha[:7]} {target.message}"
    try:
        stat = ctx.git.diff_staged_stat()
    except ExecutionError:
        logger.debug("Could not read staged diffstat", exc_info=True)
        stat = ""
    return NavigationResult(
        commit=target,
        index=target.position + 1,
        total=state.total,
        oneline=oneline,
        stat=stat,
    )


def navigate(ctx: ReviewContext, state: Active, target: Commit) -> NavigationResult:
    """Jump to target and describe the result for display."""
    jump_to(ctx, state, target)
    return _describe(ctx, state, target)


def advance(ctx: ReviewContext) -> NavigationResult:
    """Move to the next commit, or to the first one when the reviewer has not started.

    Running past the last commit reports done instead of failing.
    """
    state = require_active(ctx.store)
    reviewer = current_reviewer(ctx)

    if reviewer.current_sha is None:
        next_pos = 0
    else:
        pos = state.position_of(reviewer.current_sha)
        if pos is None:
            raise ReviewError(f"current commit {reviewer.current_sha[:7]} is not in the commit list")
        next_pos = pos + 1

    if next_pos >= state.total:
        return NavigationResult(done=True, total=state.total)

    return navigate(ctx, state, state.commits[next_pos])


def resolve_commit(ctx: ReviewContext, ref: str) -> Commit:
    """Find a session commit by full SHA or unambiguous prefix."""
    ref = (ref or "").strip()
    if not ref:
        raise NotFoundError("commit", ref)
    matches = ctx.store.find_commits_by_prefix(ref)
    if not matches:
        raise NotFoundError("commit", ref)
    if len(matches) > 1:
        raise NotFoundError("commit", ref, ambiguous=True)
    return matches[0]


def jump(ctx: ReviewContext, ref: str) -> NavigationResult:
    state = require_active(ctx.store)
    current_reviewer(ctx)
    return navigate(ctx, state, resolve_commit(ctx, ref))
