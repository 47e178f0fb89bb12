"""Shared fixtures: a throwaway git repository with a feature branch to review.

Layout of the repository built by ``git_repo``:

  main          README.md
  feature/test  1. Add app.js
                2. Add greeting      (app.js, lib.js)
                3. Fix off-by-one    (app.js)
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest


def run_git(cwd, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=str(cwd), check=True, capture_output=True, text=True)
    return result.stdout.strip()


def _commit(repo: Path, files: dict[str, str], message: str) -> str:
    for name, content in files.items():
        (repo / name).write_text(content)
        run_git(repo, "add", name)
    run_git(repo, "commit", "-q", "-m", message)
    return run_git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path, monkeypatch):
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")
    monkeypatch.delenv("REVWALK_AUTHOR", raising=False)
    monkeypatch.delenv("REVWALK_CONFIG", raising=False)

    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(repo, "init", "-q")
    run_git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    base = _commit(repo, {"README.md": "# demo\n"}, "Initial commit")

    run_git(repo, "checkout", "-q", "-b", "feature/test")
    c1 = _commit(repo, {"app.js": "function add(a, b) {\n  return a + b;\n}\n"}, "Add app.js")
    c2 = _commit(
        repo,
        {
            "app.js": "function add(a, b) {\n  return a + b;\n}\n\nfunction greet(n) {\n  return 'hi ' + n;\n}\n",
            "lib.js": "module.exports = {};\n",
        },
        "Add greeting",
    )
    c3 = _commit(
        repo,
        {"app.js": "function add(a, b) {\n  return a + b;\n}\n\nfunction greet(n) {\n  return 'hello ' + n;\n}\n"},
        "Fix off-by-one",
    )

    return SimpleNamespace(path=repo, base=base, commits=[c1, c2, c3], branch="feature/test")


@pytest.fixture
def git(git_repo):
    """Run git in the test repository and return stripped stdout."""

    def _run(*args: str, cwd=None) -> str:
        return run_git(cwd or git_repo.path, *args)

    return _run


@pytest.fixture
def review_ctx(git_repo):
    """A ReviewContext bound to the main working copy with a fresh store."""
    from revwalk_core.config import DEFAULT_CONFIG, db_path
    from revwalk_core.context import ReviewContext
    from revwalk_core.git.executor import GitExecutor
    from revwalk_store.sqlite import SQLiteStore

    executor = GitExecutor(str(git_repo.path))
    config = {**DEFAULT_CONFIG, "base_candidates": list(DEFAULT_CONFIG["base_candidates"])}
    ctx = ReviewContext(git=executor, store=SQLiteStore.create(db_path(executor.common_dir, config)), config=config)
    yield ctx
    ctx.store.close()
