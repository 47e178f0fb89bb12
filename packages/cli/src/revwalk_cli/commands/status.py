"""status command — show review progress."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from revwalk_core.lifecycle import StatusResult, status
from revwalk_core.notes import pluralize, short_sha
from revwalk_core.session import reviewer_label

console = Console(highlight=False, soft_wrap=True)


def render_status(result: StatusResult) -> None:
    total = len(result.commits)
    console.print()
    console.print(f"[bold]Review Progress[/bold]  {escape(result.session.branch)}")
    console.print()

    if len(result.reviewers) > 1:
        for r in result.reviewers:
            pos = result.position_of(r)
            where = "not started" if pos is None else f"{pos + 1}/{total}"
            console.print(f"  Reviewer {escape(reviewer_label(r.name))}: {where}")
        console.print()

    current = result.current_position
    for c in result.commits:
        n = result.comment_counts.get(c.sha, 0)
        badge = f" ({n} {pluralize(n, 'comment', 'comments')})" if n else ""
        line = escape(f"{c.position + 1}. {short_sha(c.sha)} {c.message}{badge}")
        if current is not None and c.position < current:
            console.print(f"  [green]✓ {line}[/green]")
        elif c.position == current:
            console.print(f"  [yellow]→ {line}[/yellow]")
        else:
            console.print(f"  ○ {line}")
    console.print()


@click.command("status")
@click.pass_context
def status_cmd(ctx):
    """Show which commits you have reviewed and how many comments each has."""
    render_status(status(ctx.obj["review"]))
