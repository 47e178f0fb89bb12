"""finish and abort commands — end the review."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from revwalk_core.lifecycle import abort_review, finish_review
from revwalk_core.notes import pluralize

console = Console(highlight=False, soft_wrap=True)


def _print_warnings(warnings: list[str]) -> None:
    for w in warnings:
        console.print(f"[yellow]Warning: {escape(w)}[/yellow]")


@click.command("finish")
@click.pass_context
def finish_cmd(ctx):
    """Write every comment to git notes on its commit and end the review.

    Must be run from the main working copy.
    """
    result = finish_review(ctx.obj["review"])
    _print_warnings(result.warnings)

    console.print()
    console.print("[green]══ Review Complete ══[/green]")
    console.print()
    commits = pluralize(result.commit_count, "commit", "commits")
    console.print(f"[cyan]  Comments : {result.comment_count} across {result.commit_count} {commits}[/cyan]")
    console.print(f"[cyan]  Back on  : {escape(result.branch)}[/cyan]")
    console.print()
    if result.annotated:
        console.print("  Comments written to git notes on original commits.")
        console.print("  View them with: git log --notes", markup=False)


@click.command("abort")
@click.pass_context
def abort_cmd(ctx):
    """End the review and discard all comments.

    Must be run from the main working copy.
    """
    result = abort_review(ctx.obj["review"])
    _print_warnings(result.warnings)
    console.print(f"[green]✓[/green] Review aborted. Back on: {escape(result.branch)}")
