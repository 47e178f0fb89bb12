"""Thin wrapper around the git CLI.

A GitExecutor is bound to one working directory. All review state is anchored
at the repository's common git directory, which is shared by the main working
copy and every linked worktree, so each reviewer process finds the same
database no matter which worktree it runs in.
"""

from __future__ import annotations

import logging
import os
import subprocess

from revwalk_core.errors import ExecutionError, NotInRepositoryError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GitExecutor:
    """Runs git commands in ``workdir`` and knows which reviewer owns it.

    ``reviewer`` is the empty string in the main working copy and the linked
    worktree's name elsewhere.
    """

    def __init__(self, workdir: str = ".", timeout: float = DEFAULT_TIMEOUT, *, _resolve: bool = True):
        self.workdir = workdir
        self.timeout = timeout
        self.common_dir = ""
        self.reviewer = ""
        if not _resolve:
            return

        try:
            common_dir = self.run("rev-parse", "--git-common-dir")
            git_dir = self.run("rev-parse", "--absolute-git-dir")
        except ExecutionError as e:
            raise NotInRepositoryError(os.path.abspath(workdir)) from e

        if not os.path.isabs(common_dir):
            common_dir = os.path.abspath(os.path.join(workdir, common_dir))
        self.common_dir = os.path.realpath(common_dir)
        # Main working copy: its git dir is the common dir itself.
        if os.path.realpath(git_dir) != self.common_dir:
            self.reviewer = os.path.basename(git_dir)

    def for_worktree(self, name: str, path: str) -> GitExecutor:
        """Return an executor for a linked worktree that shares this common dir."""
        g = GitExecutor(path, self.timeout, _resolve=False)
        g.common_dir = self.common_dir
        g.reviewer = name
        return g

    @property
    def is_main_worktree(self) -> bool:
        return self.reviewer == ""

    # ------------------------------------------------------------------
    # Process execution
    # ------------------------------------------------------------------

    def _exec(self, args: tuple[str, ...]) -> subprocess.CompletedProcess:
        logger.debug("git %s (in %s)", " ".join(args), self.workdir)
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.workdir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(args, self.workdir, f"timed out after {self.timeout:g}s") from e
        except OSError as e:
            raise ExecutionError(args, self.workdir, str(e)) from e

    def run(self, *args: str) -> str:
        """Run git and return stripped stdout. Raises ExecutionError on non-zero exit."""
        result = self._exec(args)
        if result.returncode != 0:
            cause = result.stderr.strip() or f"exit status {result.returncode}"
            raise ExecutionError(args, self.workdir, cause)
        return result.stdout.strip()

    def run_silent(self, *args: str) -> None:
        """Run git, discarding output. Raises ExecutionError on non-zero exit."""
        self.run(*args)

    def succeeds(self, *args: str) -> bool:
        """Run git and report only whether it exited with status 0."""
        return self._exec(args).returncode == 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def rev_parse(self, ref: str) -> str:
        return self.run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")

    def current_branch(self) -> str:
        return self.run("branch", "--show-current")

    def ref_exists(self, ref: str) -> bool:
        return self.succeeds("rev-parse", "--verify", "--quiet", ref)

    def is_clean(self) -> bool:
        """True when there are neither staged nor unstaged changes to tracked files."""
        return self.succeeds("diff", "--cached", "--quiet") and self.succeeds("diff", "--quiet")

    def merge_base(self, ref1: str, ref2: str) -> str:
        return self.run("merge-base", ref1, ref2)

    def rev_list(self, range_spec: str) -> list[str]:
        """Return commit SHAs in range_spec, oldest first."""
        out = self.run("rev-list", "--reverse", range_spec)
        return out.splitlines() if out else []

    def oneline(self, ref: str) -> str:
        return self.run("log", "--oneline", "-1", ref)

    def subject(self, ref: str) -> str:
        return self.run("log", "-1", "--format=%s", ref)

    def full_message(self, ref: str) -> str:
        return self.run("log", "-1", "--format=%B", ref)

    def tree_of(self, ref: str) -> str:
        return self.run("rev-parse", f"{ref}^{{tree}}")

    def diff_staged_stat(self) -> str:
        return self.run("diff", "--staged", "--stat")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def checkout(self, ref: str) -> None:
        self.run_silent("checkout", "--quiet", ref)

    def checkout_force(self, ref: str) -> None:
        self.run_silent("checkout", "--force", "--quiet", ref)

    def read_tree_reset(self, ref: str) -> None:
        """Replace the index (and tracked files) with ref's tree, leaving HEAD alone."""
        self.run_silent("read-tree", "-u", "--reset", ref)

    def notes_append(self, sha: str, message: str, notes_ref: str | None = None) -> None:
        """Append message to the notes on sha, creating the note if needed."""
        prefix = ["notes"] if notes_ref is None else ["notes", "--ref", notes_ref]
        try:
            self.run_silent(*prefix, "append", "-m", message, sha)
        except ExecutionError:
            logger.debug("notes append failed for %s, retrying with notes add", sha)
            self.run_silent(*prefix, "add", "-m", message, sha)

    def worktree_add(self, path: str) -> None:
        self.run_silent("worktree", "add", "--detach", path)

    def worktree_remove(self, path: str) -> None:
        self.run_silent("worktree", "remove", "--force", path)
