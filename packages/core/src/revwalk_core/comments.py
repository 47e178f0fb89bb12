"""Comment engine: threaded comments attached to commits, files and lines.

Comments form a per-review forest encoded through parent_id. The rules:

- A comment with no parent is a thread root; only roots carry resolution state.
- Deleting a root removes its whole subtree.
- Deleting a reply hands its direct children to its own parent, so the
  thread keeps its root and nothing is orphaned.

Tree walks build a parent → children map once from the full comment list and
traverse it breadth-first, rather than querying per node.
"""

from __future__ import annotations

import logging
import os
import re
from collections import deque
from dataclasses import dataclass

from uuid6 import uuid7

from revwalk_core.context import ReviewContext, utc_now
from revwalk_core.errors import InvalidOperationError, NotFoundError
from revwalk_core.session import current_reviewer, require_active
from revwalk_store.models import Comment, Commit
from revwalk_store.sqlite import SQLiteStore

logger = logging.getLogger(__name__)

_LINE_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:[,-]\s*(\d+)\s*)?$")

# Shortest prefix length shown for a comment id.
MIN_ID_PREFIX = 8


@dataclass
class AddCommentRequest:
    body: str
    file: str | None = None
    line_range: str | None = None  # "N", "N,M" or "N-M"
    reply_to: str | None = None  # id or unambiguous id prefix of the parent
    author: str | None = None  # defaults to the reviewer owning the working copy


@dataclass
class CommentFilter:
    """AND-combined filters applied to thread roots."""

    commit: str | None = None  # commit SHA prefix
    unresolved: bool = False
    creator: str | None = None
    file: str | None = None
    top_level: bool = False  # drop replies from the result

    @property
    def is_empty(self) -> bool:
        return not (self.commit or self.unresolved or self.creator is not None or self.file or self.top_level)


@dataclass
class DeleteResult:
    comment: Comment
    removed: int  # rows deleted, including a root's replies
    reparented: int  # replies handed to the deleted comment's parent


def parse_line_range(raw: str | None) -> tuple[int | None, int | None]:
    """Parse "N", "N,M" or "N-M" into an inclusive 1-based (start, end) pair.

    An empty or missing range yields (None, None).
    """
    if raw is None or raw.strip() == "":
        return None, None
    m = _LINE_RANGE_RE.match(raw)
    if not m:
        raise InvalidOperationError(f"invalid line range {raw!r}: expected N, N,M or N-M")
    start = int(m.group(1))
    end = int(m.group(2)) if m.group(2) is not None else start
    if start < 1:
        raise InvalidOperationError(f"invalid line range {raw!r}: lines start at 1")
    if start > end:
        raise InvalidOperationError(f"invalid line range {raw!r}: start must not exceed end")
    return start, end


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def build_children_map(all_comments: list[Comment]) -> dict[str, list[Comment]]:
    children: dict[str, list[Comment]] = {}
    for c in all_comments:
        if c.parent_id is not None:
            children.setdefault(c.parent_id, []).append(c)
    return children


def build_id_map(all_comments: list[Comment]) -> dict[str, Comment]:
    return {c.id: c for c in all_comments}


def find_root(id_map: dict[str, Comment], comment: Comment) -> Comment:
    """Walk parent links up to the thread root."""
    current = comment
    while current.parent_id is not None:
        parent = id_map.get(current.parent_id)
        if parent is None:
            break
        current = parent
    return current


def descendants(children_map: dict[str, list[Comment]], comment_id: str) -> list[Comment]:
    """All transitive replies of comment_id, sorted by id (creation order)."""
    result: list[Comment] = []
    queue = deque([comment_id])
    while queue:
        for child in children_map.get(queue.popleft(), []):
            result.append(child)
            queue.append(child.id)
    result.sort(key=lambda c: c.id)
    return result


def filter_comments(all_comments: list[Comment], commits: list[Commit], flt: CommentFilter) -> list[Comment]:
    """Return the roots passing every active filter plus all of their replies.

    Replies are kept whatever their own commit, author or file. Order follows
    all_comments. A commit prefix matching no commit yields an empty list.
    """
    if flt.is_empty:
        return list(all_comments)

    match_sha = None
    if flt.commit:
        matches = [c.sha for c in commits if c.sha.startswith(flt.commit.lower())]
        if not matches:
            return []
        if len(matches) > 1:
            raise NotFoundError("commit", flt.commit, ambiguous=True)
        match_sha = matches[0]

    root_ids = set()
    for c in all_comments:
        if not c.is_root:
            continue
        if match_sha is not None and c.commit != match_sha:
            continue
        if flt.unresolved and c.is_resolved:
            continue
        if flt.creator is not None and c.created_by != flt.creator:
            continue
        if flt.file and c.file != flt.file:
            continue
        root_ids.add(c.id)

    if flt.top_level:
        return [c for c in all_comments if c.id in root_ids]

    children_map = build_children_map(all_comments)
    keep = set(root_ids)
    for root_id in root_ids:
        keep.update(d.id for d in descendants(children_map, root_id))
    return [c for c in all_comments if c.id in keep]


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def find_comment(store: SQLiteStore, ref: str) -> Comment:
    """Resolve a comment by full id or unambiguous id prefix."""
    ref = (ref or "").strip().lower()
    if not ref:
        raise NotFoundError("comment", ref)
    matches = store.find_comments_by_prefix(ref)
    exact = [c for c in matches if c.id == ref]
    if exact:
        return exact[0]
    if not matches:
        raise NotFoundError("comment", ref)
    if len(matches) > 1:
        raise NotFoundError("comment", ref, ambiguous=True)
    return matches[0]


def unique_prefixes(ids, minimum: int = MIN_ID_PREFIX) -> dict[str, str]:
    """Map each id to the shortest prefix that no other id shares.

    Each prefix is at least minimum characters long and resolves back to
    exactly one id of the given set.
    """
    ordered = sorted(set(ids))
    prefixes = {}
    for i, cid in enumerate(ordered):
        n = minimum
        for other in ordered[max(i - 1, 0) : i] + ordered[i + 1 : i + 2]:
            n = max(n, len(os.path.commonprefix([cid, other])) + 1)
        prefixes[cid] = cid[:n]
    return prefixes


def comment_prefixes(ctx: ReviewContext, *extra: str) -> dict[str, str]:
    """Display prefixes for every comment in the review, plus any extra ids."""
    return unique_prefixes([*(c.id for c in ctx.store.list_comments()), *extra])


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def add_comment(ctx: ReviewContext, req: AddCommentRequest) -> Comment:
    """Create a top-level comment on the reviewer's current commit, or a reply.

    A reply copies commit, file and lines from its parent.
    """
    require_active(ctx.store)
    if not req.body or not req.body.strip():
        raise InvalidOperationError("comment body must not be empty")

    author = req.author if req.author is not None else ctx.default_author()
    now = utc_now()
    new_id = str(uuid7())

    if req.reply_to:
        parent = find_comment(ctx.store, req.reply_to)
        comment = Comment(
            id=new_id,
            parent_id=parent.id,
            commit=parent.commit,
            file=parent.file,
            start_line=parent.start_line,
            end_line=parent.end_line,
            body=req.body,
            created_at=now,
            created_by=author,
        )
    else:
        reviewer = current_reviewer(ctx)
        if reviewer.current_sha is None:
            raise InvalidOperationError("No commit selected. Run 'git revwalk next' first.")
        start, end = parse_line_range(req.line_range)
        file = req.file or None
        if start is not None and file is None:
            raise InvalidOperationError("a line range needs a file (--file)")
        comment = Comment(
            id=new_id,
            commit=reviewer.current_sha,
            file=file,
            start_line=start,
            end_line=end,
            body=req.body,
            created_at=now,
            created_by=author,
        )

    ctx.store.insert_comment(comment)
    logger.debug("Added comment %s on %s", comment.id, comment.commit)
    return comment


def delete_comment(ctx: ReviewContext, ref: str) -> DeleteResult:
    """Delete a comment, cascading for roots and re-parenting for replies.

    Lookup, re-parenting and deletion run in one transaction so no reader
    ever sees a half-applied delete.
    """
    require_active(ctx.store)
    with ctx.store.transaction() as store:
        target = find_comment(store, ref)
        if target.is_root:
            subtree = descendants(build_children_map(store.list_comments()), target.id)
            # The parent_id foreign key cascades to every reply.
            store.delete_comment(target.id)
            result = DeleteResult(comment=target, removed=1 + len(subtree), reparented=0)
        else:
            moved = store.reparent_children(target.id, target.parent_id)
            store.delete_comment(target.id)
            result = DeleteResult(comment=target, removed=1, reparented=moved)
    logger.debug("Deleted comment %s (%d removed, %d re-parented)", target.id, result.removed, result.reparented)
    return result


def resolve_comment(ctx: ReviewContext, ref: str, resolved_by: str | None = None) -> Comment:
    require_active(ctx.store)
    comment = find_comment(ctx.store, ref)
    label = comment_prefixes(ctx)[comment.id]
    if not comment.is_root:
        raise InvalidOperationError(f"only root comments can be resolved: {label} is a reply")
    if comment.is_resolved:
        raise InvalidOperationError(f"thread {label} is already resolved")
    by = resolved_by if resolved_by is not None else ctx.default_author()
    if not ctx.store.resolve_comment(comment.id, utc_now(), by):
        raise InvalidOperationError(f"thread {label} is already resolved")
    return ctx.store.get_comment(comment.id)


def unresolve_comment(ctx: ReviewContext, ref: str) -> Comment:
    require_active(ctx.store)
    comment = find_comment(ctx.store, ref)
    label = comment_prefixes(ctx)[comment.id]
    if not comment.is_root:
        raise InvalidOperationError(f"only root comments can be unresolved: {label} is a reply")
    if not comment.is_resolved:
        raise InvalidOperationError(f"thread {label} is not resolved")
    if not ctx.store.unresolve_comment(comment.id):
        raise InvalidOperationError(f"thread {label} is not resolved")
    return ctx.store.get_comment(comment.id)


def list_comments(ctx: ReviewContext, flt: CommentFilter | None = None) -> list[Comment]:
    state = require_active(ctx.store)
    return filter_comments(ctx.store.list_comments(), state.commits, flt or CommentFilter())


def get_thread(ctx: ReviewContext, ref: str) -> list[Comment]:
    """Return the thread containing ref: its root, then every reply in id order."""
    require_active(ctx.store)
    all_comments = ctx.store.list_comments()
    target = find_comment(ctx.store, ref)
    root = find_root(build_id_map(all_comments), target)
    return [root, *descendants(build_children_map(all_comments), root.id)]
