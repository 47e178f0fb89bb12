"""Machine-readable snapshot of the review, polled by editor integrations.

The shape is stable: camelCase keys, identifiers as strings, explicit nulls
and ISO-8601 timestamps.
"""

from __future__ import annotations

from revwalk_core.session import Active, check_session
from revwalk_store.models import Comment
from revwalk_store.sqlite import SQLiteStore


def comment_to_dict(c: Comment) -> dict:
    return {
        "id": c.id,
        "parentId": c.parent_id,
        "commit": c.commit,
        "file": c.file,
        "startLine": c.start_line,
        "endLine": c.end_line,
        "body": c.body,
        "resolvedAt": c.resolved_at,
        "resolvedBy": c.resolved_by,
        "createdAt": c.created_at,
        "createdBy": c.created_by,
    }


def build_snapshot(store: SQLiteStore | None, reviewer: str) -> dict | None:
    """Return the snapshot for ``reviewer``, or None when no review is in progress."""
    state = check_session(store)
    if not isinstance(state, Active):
        return None

    with store.transaction(write=False):
        current = None
        r = store.get_reviewer(reviewer)
        if r is not None:
            current = state.position_of(r.current_sha)
        comments = store.list_comments()

    return {
        "baseRef": state.session.base_ref,
        "branch": state.session.branch,
        "commits": [c.sha for c in state.commits],
        "current": current,
        "comments": [comment_to_dict(c) for c in comments],
    }
