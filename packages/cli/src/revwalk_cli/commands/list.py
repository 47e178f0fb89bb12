"""list command — print review comments as Markdown."""

from __future__ import annotations

import click
from rich.console import Console

from revwalk_core.comments import (
    CommentFilter,
    build_children_map,
    comment_prefixes,
    descendants,
    get_thread,
    list_comments,
    unique_prefixes,
)
from revwalk_core.notes import author_suffix, cross_commit_tag, format_line_range, group_roots, short_sha
from revwalk_core.session import require_active
from revwalk_store.models import Comment, Commit, Session

console = Console(highlight=False, soft_wrap=True)


def resolved_tag(c: Comment) -> str:
    if not c.is_root or not c.is_resolved:
        return ""
    by = f" by {c.resolved_by}" if c.resolved_by else ""
    return f" [resolved{by}]"


def comment_line(c: Comment, section_commit: str, prefixes: dict[str, str], indent: str = "") -> str:
    return (
        f"{indent}[{prefixes[c.id]}] {cross_commit_tag(c, section_commit)}"
        f"{c.body}{author_suffix(c.created_by)}{resolved_tag(c)}"
    )


def file_root_line(c: Comment, section_commit: str, prefixes: dict[str, str]) -> str:
    lr = format_line_range(c.start_line, c.end_line)
    loc = f"L{lr}: " if lr else ""
    return (
        f"  [{prefixes[c.id]}] {cross_commit_tag(c, section_commit)}{loc}"
        f"{c.body}{author_suffix(c.created_by)}{resolved_tag(c)}"
    )


def render_thread(
    children_map: dict[str, list[Comment]],
    root: Comment,
    section_commit: str,
    prefixes: dict[str, str],
) -> list[str]:
    lines = [comment_line(root, section_commit, prefixes)]
    lines.extend(comment_line(d, section_commit, prefixes, "  ") for d in descendants(children_map, root.id))
    return lines


def render_markdown(
    session: Session,
    commits: list[Commit],
    comments: list[Comment],
    children_map: dict[str, list[Comment]],
    top_level: bool = False,
    prefixes: dict[str, str] | None = None,
) -> str:
    """Render comments as one Markdown section per commit.

    General comments come first, then file comments grouped under their path.
    Replies follow their root indented, and are omitted when top_level is set.
    Ids are shown as the prefixes in prefixes, computed from comments when omitted.
    """
    if prefixes is None:
        prefixes = unique_prefixes(c.id for c in comments)
    total = len(commits)
    lines = ["# Review Comments", "", f"Branch: {session.branch}", f"Commits: {total}"]

    for cm in commits:
        lines += ["", "---", "", f"## Commit {cm.position + 1}/{total} {short_sha(cm.sha)}: {cm.message}", ""]
        roots = [c for c in comments if c.commit == cm.sha and c.is_root]
        if not roots:
            lines.append("No comments")
            continue

        general, files = group_roots(roots)
        for root in general:
            if top_level:
                lines.append(comment_line(root, cm.sha, prefixes))
            else:
                lines.extend(render_thread(children_map, root, cm.sha, prefixes))
        for path, file_roots in files:
            lines.append(path)
            for root in file_roots:
                if top_level:
                    lines.append(comment_line(root, cm.sha, prefixes, "  "))
                    continue
                lines.append(file_root_line(root, cm.sha, prefixes))
                lines.extend(comment_line(d, cm.sha, prefixes, "    ") for d in descendants(children_map, root.id))
    return "\n".join(lines)


@click.command("list")
@click.argument("comment_id", metavar="[ID]", required=False)
@click.option("--commit", "commit_ref", default=None, help="Only threads on the commit with this SHA prefix.")
@click.option("--unresolved", is_flag=True, help="Only unresolved threads.")
@click.option("--creator", default=None, help="Only threads started by this author.")
@click.option("--file", "file_path", default=None, help="Only threads on this file path.")
@click.option("--top-level", is_flag=True, help="Omit replies.")
@click.pass_context
def list_cmd(
    ctx,
    comment_id: str | None,
    commit_ref: str | None,
    unresolved: bool,
    creator: str | None,
    file_path: str | None,
    top_level: bool,
):
    """List review comments as Markdown, or show the thread containing ID."""
    review = ctx.obj["review"]

    if comment_id:
        thread = get_thread(review, comment_id)
        root = thread[0]
        console.print()
        console.print(
            "\n".join(render_thread(build_children_map(thread), root, root.commit, comment_prefixes(review))),
            markup=False,
        )
        console.print()
        return

    state = require_active(review.store)
    flt = CommentFilter(
        commit=commit_ref,
        unresolved=unresolved,
        creator=creator,
        file=file_path,
        top_level=top_level,
    )
    comments = list_comments(review, flt)
    text = render_markdown(
        state.session,
        state.commits,
        comments,
        build_children_map(comments),
        top_level,
        prefixes=comment_prefixes(review),
    )
    console.print()
    console.print(text, markup=False)
    console.print()
