"""state command — dump the review as JSON for editor integrations."""

from __future__ import annotations

import json

import click

from revwalk_core.state import build_snapshot


@click.command("state")
@click.pass_context
def state_cmd(ctx):
    """Print the review as JSON, or null when no review is in progress."""
    review = ctx.obj["review"]
    snapshot = build_snapshot(review.store, review.reviewer)
    click.echo(json.dumps(snapshot, indent=2))
