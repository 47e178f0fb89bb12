"""CLI entry point for revwalk.

Installed as ``git-revwalk`` so it also runs as ``git revwalk``.

Commands:
  start     — start a review, join one with -a NAME, or show status (default)
  next      — advance to the next commit
  jump      — move to a commit by SHA prefix
  add       — comment on the current commit, a file, a line range, or reply
  list      — print comments as Markdown, optionally one thread
  status    — show review progress
  delete    — delete a comment (replies are kept for non-root comments)
  resolve   — mark a thread resolved
  unresolve — reopen a resolved thread
  finish    — write comments to git notes and end the review
  abort     — end the review and discard all comments
  state     — dump the review as JSON for editor integrations
"""

from __future__ import annotations

import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler

from revwalk_cli.commands.comment import add_cmd, delete_cmd, resolve_cmd, unresolve_cmd
from revwalk_cli.commands.finish import abort_cmd, finish_cmd
from revwalk_cli.commands.list import list_cmd
from revwalk_cli.commands.navigate import jump_cmd, next_cmd
from revwalk_cli.commands.start import start_cmd
from revwalk_cli.commands.state import state_cmd
from revwalk_cli.commands.status import status_cmd
from revwalk_core.errors import NoActiveSessionError, ReviewError
from revwalk_store.errors import StorageError

logger = logging.getLogger(__name__)


def describe_error(err: BaseException) -> str:
    """Join the messages along the ``__cause__`` chain into one line."""
    parts = []
    current: BaseException | None = err
    while current is not None:
        msg = str(current).strip()
        if msg and msg not in parts:
            parts.append(msg)
        current = current.__cause__
    return ": ".join(parts) or type(err).__name__


class ReviewGroup(click.Group):
    """A click group that renders engine errors as a single ``Error:`` line."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except (ReviewError, StorageError) as err:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(describe_error(err)) from err


def _setup_logging(verbose: bool) -> None:
    # Operations return their warnings for display, so only errors are logged by default.
    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _open_store(subcommand: str | None, db_file: str):
    """Open the review database for the command about to run.

    start creates it; state tolerates its absence; everything else needs a review.
    """
    from revwalk_store.sqlite import SQLiteStore

    if subcommand in (None, "start"):
        return SQLiteStore.create(db_file)
    if not os.path.exists(db_file):
        if subcommand == "state":
            return None
        raise NoActiveSessionError()
    return SQLiteStore.open(db_file)


@click.group(cls=ReviewGroup, invoke_without_command=True)
@click.version_option(package_name="revwalk", prog_name="git-revwalk")
@click.option(
    "--config",
    "config_path",
    default=".revwalk.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="REVWALK_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log git invocations and tracebacks to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Review a branch one commit at a time, with comments stored as git notes."""
    from revwalk_core.config import db_path, load_config
    from revwalk_core.context import ReviewContext
    from revwalk_core.git.executor import GitExecutor

    _setup_logging(verbose)

    config = load_config(config_path)
    git = GitExecutor(".", timeout=config["git_timeout"])
    store = _open_store(ctx.invoked_subcommand, str(db_path(git.common_dir, config)))
    if store is not None:
        ctx.call_on_close(store.close)

    ctx.ensure_object(dict)
    ctx.obj["review"] = ReviewContext(git=git, store=store, config=config)

    if ctx.invoked_subcommand is None:
        ctx.invoke(start_cmd)


main.add_command(start_cmd)
main.add_command(next_cmd)
main.add_command(jump_cmd)
main.add_command(add_cmd)
main.add_command(list_cmd)
main.add_command(status_cmd)
main.add_command(delete_cmd)
main.add_command(resolve_cmd)
main.add_command(unresolve_cmd)
main.add_command(finish_cmd)
main.add_command(abort_cmd)
main.add_command(state_cmd)
