"""add, delete, resolve and unresolve commands — manage review comments."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from revwalk_core.comments import (
    AddCommentRequest,
    add_comment,
    comment_prefixes,
    delete_comment,
    resolve_comment,
    unresolve_comment,
)
from revwalk_core.notes import format_line_range, pluralize, short_sha

console = Console(highlight=False, soft_wrap=True)


@click.command("add")
@click.argument("message")
@click.option("--file", "-f", "file_path", default=None, help="File the comment is about.")
@click.option("--line", "-l", "line_range", default=None, help="Line or range, e.g. 42, 10,35 or 10-35.")
@click.option("--reply-to", "-r", default=None, help="ID (or prefix) of the comment to reply to.")
@click.option("--author", "-a", default=None, help="Author name (default: REVWALK_AUTHOR or the worktree name).")
@click.pass_context
def add_cmd(ctx, message: str, file_path: str | None, line_range: str | None, reply_to: str | None, author):
    """Comment on the current commit, or reply to an existing comment."""
    if reply_to and (file_path or line_range):
        raise click.UsageError("--file and --line cannot be combined with --reply-to; replies inherit them.")

    review = ctx.obj["review"]
    c = add_comment(
        review,
        AddCommentRequest(body=message, file=file_path, line_range=line_range, reply_to=reply_to, author=author),
    )

    where = short_sha(c.commit)
    if c.file:
        where += f" {c.file}"
        lr = format_line_range(c.start_line, c.end_line)
        if lr:
            where += f":{lr}"
    kind = "Reply" if c.parent_id else "Comment"
    console.print(f"[green]✓[/green] {kind} {escape(c.id)} added on {escape(where)}")


@click.command("delete")
@click.argument("comment_id", metavar="ID")
@click.pass_context
def delete_cmd(ctx, comment_id: str):
    """Delete a comment.

    Deleting a thread root removes its replies too. Deleting a reply moves its
    own replies up to its parent.
    """
    review = ctx.obj["review"]
    result = delete_comment(review, comment_id)
    label = comment_prefixes(review, result.comment.id)[result.comment.id]
    msg = f"Comment {escape(label)} deleted."
    if result.removed > 1:
        extra = result.removed - 1
        msg += f" {extra} {pluralize(extra, 'reply', 'replies')} removed with it."
    if result.reparented:
        msg += f" {result.reparented} {pluralize(result.reparented, 'reply', 'replies')} moved up."
    console.print(f"[green]✓[/green] {msg}")


@click.command("resolve")
@click.argument("comment_id", metavar="ID")
@click.option("--author", "-a", default=None, help="Name to record as resolver.")
@click.pass_context
def resolve_cmd(ctx, comment_id: str, author: str | None):
    """Mark the thread rooted at ID as resolved."""
    review = ctx.obj["review"]
    c = resolve_comment(review, comment_id, author)
    by = f" by {escape(c.resolved_by)}" if c.resolved_by else ""
    console.print(f"[green]✓[/green] Thread {escape(comment_prefixes(review)[c.id])} resolved{by}.")


@click.command("unresolve")
@click.argument("comment_id", metavar="ID")
@click.pass_context
def unresolve_cmd(ctx, comment_id: str):
    """Reopen the resolved thread rooted at ID."""
    review = ctx.obj["review"]
    c = unresolve_comment(review, comment_id)
    console.print(f"[green]✓[/green] Thread {escape(comment_prefixes(review)[c.id])} reopened.")
