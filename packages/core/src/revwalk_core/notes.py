"""Formatting helpers shared by the annotation writer and the CLI renderers."""

from __future__ import annotations

from revwalk_core.comments import descendants
from revwalk_store.models import Comment


def short_sha(sha: str) -> str:
    return sha[:7]


def pluralize(n: int, singular: str, plural: str) -> str:
    return singular if n == 1 else plural


def format_line_range(start_line: int | None, end_line: int | None) -> str:
    """Format a line range as "N" or "N-M"; "" when there is no start line."""
    if start_line is None:
        return ""
    if end_line is not None and end_line != start_line:
        return f"{start_line}-{end_line}"
    return str(start_line)


def author_suffix(author: str) -> str:
    return f" @{author}" if author else ""


def cross_commit_tag(comment: Comment, section_commit: str) -> str:
    """Mark a reply whose commit differs from the commit its section is about."""
    if comment.commit != section_commit:
        return f"({short_sha(comment.commit)}) "
    return ""


def group_roots(roots: list[Comment]) -> tuple[list[Comment], list[tuple[str, list[Comment]]]]:
    """Split roots into general comments and per-file groups.

    File groups keep the order in which each file first appears.
    """
    general = [c for c in roots if c.file is None]
    files: dict[str, list[Comment]] = {}
    for c in roots:
        if c.file is not None:
            files.setdefault(c.file, []).append(c)
    return general, list(files.items())


def build_commit_note(
    all_comments: list[Comment],
    children_map: dict[str, list[Comment]],
    commit_sha: str,
) -> str:
    """Build the git note text for every thread rooted on commit_sha.

    General comments come first, then file comments grouped by file. Each
    root is followed by its replies in creation order, indented two spaces.
    Returns "" when no thread is rooted on the commit.
    """
    roots = [c for c in all_comments if c.commit == commit_sha and c.is_root]
    general, files = group_roots(roots)

    lines: list[str] = []
    ordered = general + [c for _, group in files for c in group]
    for c in ordered:
        if c.file is not None:
            loc = c.file
            lr = format_line_range(c.start_line, c.end_line)
            if lr:
                loc += ":" + lr
            lines.append(f"{loc} -- {c.body}{author_suffix(c.created_by)}")
        else:
            lines.append(f"{c.body}{author_suffix(c.created_by)}")
        for reply in descendants(children_map, c.id):
            lines.append(f"  {cross_commit_tag(reply, commit_sha)}{reply.body}{author_suffix(reply.created_by)}")
    return "\n".join(lines)
