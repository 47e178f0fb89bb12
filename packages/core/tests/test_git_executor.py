"""Tests for the git executor, against a real throwaway repository."""

from __future__ import annotations

import os
import subprocess

import pytest

from revwalk_core.errors import ExecutionError, NotInRepositoryError
from revwalk_core.git.executor import GitExecutor


def test_resolves_common_dir_in_main_working_copy(git_repo):
    g = GitExecutor(str(git_repo.path))
    assert g.common_dir == os.path.realpath(git_repo.path / ".git")
    assert g.reviewer == ""
    assert g.is_main_worktree


def test_outside_repository_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    plain = tmp_path / "plain"
    plain.mkdir()
    with pytest.raises(NotInRepositoryError) as exc:
        GitExecutor(str(plain))
    assert isinstance(exc.value.__cause__, ExecutionError)


def test_linked_worktree_reports_its_name(git_repo, git, tmp_path):
    path = tmp_path / "wt" / "security"
    git("worktree", "add", "--detach", str(path))

    g = GitExecutor(str(path))
    assert g.reviewer == "security"
    assert not g.is_main_worktree
    assert g.common_dir == GitExecutor(str(git_repo.path)).common_dir


def test_for_worktree_shares_common_dir(git_repo):
    g = GitExecutor(str(git_repo.path))
    w = g.for_worktree("security", "/somewhere/else")
    assert w.common_dir == g.common_dir
    assert w.reviewer == "security"
    assert w.workdir == "/somewhere/else"
    assert w.timeout == g.timeout


def test_run_failure_carries_command_and_cause(git_repo):
    g = GitExecutor(str(git_repo.path))
    with pytest.raises(ExecutionError) as exc:
        g.run("rev-parse", "--verify", "no-such-ref")
    err = exc.value
    assert err.command == ["rev-parse", "--verify", "no-such-ref"]
    assert err.workdir == str(git_repo.path)
    assert "git rev-parse --verify no-such-ref failed" in str(err)


def test_timeout_becomes_execution_error(git_repo, mocker):
    g = GitExecutor(str(git_repo.path))
    mocker.patch(
        "revwalk_core.git.executor.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd=["git", "status"], timeout=g.timeout),
    )
    with pytest.raises(ExecutionError, match="timed out"):
        g.run("status")


def test_missing_git_binary_becomes_execution_error(git_repo, mocker):
    g = GitExecutor(str(git_repo.path))
    mocker.patch("revwalk_core.git.executor.subprocess.run", side_effect=FileNotFoundError("git"))
    with pytest.raises(ExecutionError):
        g.run("status")


def test_queries(git_repo):
    g = GitExecutor(str(git_repo.path))
    c1, c2, c3 = git_repo.commits

    assert g.current_branch() == "feature/test"
    assert g.ref_exists("main")
    assert not g.ref_exists("develop")
    assert g.rev_parse("HEAD") == c3
    assert g.merge_base("main", "HEAD") == git_repo.base
    assert g.rev_list(f"{git_repo.base}..HEAD") == [c1, c2, c3]
    assert g.rev_list("HEAD..HEAD") == []
    assert g.subject(c2) == "Add greeting"
    assert g.oneline(c2).endswith("Add greeting")
    assert g.full_message(c2) == "Add greeting"
    assert g.is_clean()


def test_rev_parse_rejects_unknown_ref(git_repo):
    g = GitExecutor(str(git_repo.path))
    with pytest.raises(ExecutionError):
        g.rev_parse("nope")


def test_is_clean_detects_edits(git_repo):
    g = GitExecutor(str(git_repo.path))
    (git_repo.path / "app.js").write_text("changed\n")
    assert not g.is_clean()


def test_checkout_switches_branch(git_repo, git):
    g = GitExecutor(str(git_repo.path))
    g.checkout("main")
    assert g.current_branch() == "main"
    assert git("rev-parse", "HEAD") == git_repo.base


def test_checkout_parent_then_read_tree_stages_the_commit(git_repo, git):
    g = GitExecutor(str(git_repo.path))
    c1, c2, _ = git_repo.commits

    g.checkout_force(c1)
    g.read_tree_reset(c2)

    assert git("rev-parse", "HEAD") == c1
    assert git("write-tree") == g.tree_of(c2)
    staged = git("diff", "--staged", "--name-only").splitlines()
    assert sorted(staged) == ["app.js", "lib.js"]
    assert "lib.js" in g.diff_staged_stat()


def test_notes_append_creates_then_appends(git_repo, git):
    g = GitExecutor(str(git_repo.path))
    sha = git_repo.commits[0]

    g.notes_append(sha, "first")
    g.notes_append(sha, "second")

    note = git("notes", "show", sha)
    assert "first" in note
    assert "second" in note


def test_notes_append_custom_ref(git_repo, git):
    g = GitExecutor(str(git_repo.path))
    sha = git_repo.commits[0]

    g.notes_append(sha, "custom", notes_ref="review")

    assert git("notes", "--ref", "review", "show", sha) == "custom"
    assert not g.succeeds("notes", "show", sha)
