"""next and jump commands — move through the commits under review."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from revwalk_core.navigation import NavigationResult, advance, jump

console = Console(highlight=False, soft_wrap=True)


def render_position(nav: NavigationResult) -> None:
    console.print()
    console.print("  [bold]→[/bold] " + escape(f"[{nav.index}/{nav.total}] {nav.oneline}"))
    if nav.stat:
        console.print()
        console.print(nav.stat, markup=False)


@click.command("next")
@click.pass_context
def next_cmd(ctx):
    """Stage the next commit's changes in your working copy."""
    nav = advance(ctx.obj["review"])
    if nav.done:
        console.print()
        console.print("[green]All commits reviewed.[/green]")
        console.print()
        console.print("  git revwalk finish    Complete the review")
        console.print("  git revwalk list      View all comments")
        return
    render_position(nav)


@click.command("jump")
@click.argument("commit_ref", metavar="HASH")
@click.pass_context
def jump_cmd(ctx, commit_ref: str):
    """Stage the changes of the commit whose SHA starts with HASH."""
    render_position(jump(ctx.obj["review"], commit_ref))
