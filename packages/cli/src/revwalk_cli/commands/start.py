"""start command — begin a review, join one as a named reviewer, or show status."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from revwalk_cli.commands.navigate import render_position
from revwalk_cli.commands.status import render_status
from revwalk_core.lifecycle import JoinResult, StartResult, start_review
from revwalk_core.notes import short_sha

console = Console(highlight=False, soft_wrap=True)


def _render_start(result: StartResult) -> None:
    if result.base_label:
        console.print(f"[cyan]Base: {escape(result.base_label)} ({short_sha(result.base)})[/cyan]")
    console.print()
    console.print(f"[green]══ Review Started: {result.total} commit(s) ══[/green]")
    render_position(result.navigation)
    if result.worktree:
        console.print()
        console.print(f"  Worktree: {escape(result.worktree)}")
    console.print()
    console.print("  Staged changes are ready for review.")
    console.print()
    console.print("    git revwalk add 'message'                Add comment", markup=False)
    console.print("    git revwalk add -f file -l N 'message'   Add comment on file:line", markup=False)
    console.print("    git revwalk next                         Next commit", markup=False)


def _render_join(result: JoinResult) -> None:
    console.print()
    console.print(f"[green]══ Joined Review as {escape(result.reviewer)}: {result.total} commit(s) ══[/green]")
    render_position(result.navigation)
    console.print()
    console.print(f"  Worktree: {escape(result.worktree)}")


@click.command("start")
@click.argument("base", required=False)
@click.option("--as", "-a", "name", default=None, help="Review as NAME in a dedicated worktree.")
@click.pass_context
def start_cmd(ctx, base: str | None, name: str | None):
    """Start reviewing the commits between BASE and HEAD.

    BASE defaults to the merge base with the first of main, master or develop
    that exists. With a review already in progress, -a NAME joins it as another
    reviewer and a bare start shows its status.
    """
    result = start_review(ctx.obj["review"], base=base, name=name)
    if isinstance(result, StartResult):
        _render_start(result)
    elif isinstance(result, JoinResult):
        _render_join(result)
    else:
        render_status(result)
