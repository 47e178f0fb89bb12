"""Tests for the SQLite review store."""

from __future__ import annotations

import pytest

from revwalk_store.errors import StorageError
from revwalk_store.models import Comment, Commit, Reviewer, Session
from revwalk_store.sqlite import SQLiteStore

NOW = "2026-01-01T00:00:00+00:00"


def _seed(store: SQLiteStore, n_commits: int = 3) -> list[Commit]:
    commits = [Commit(sha=f"{i:x}" * 40, message=f"commit {i}", position=i - 1) for i in range(1, n_commits + 1)]
    with store.transaction():
        store.insert_session(Session(base_ref="0" * 40, branch="feature/test", created_at=NOW))
        for c in commits:
            store.insert_commit(c)
        store.insert_reviewer(Reviewer(name=""))
    return commits


def _comment(cid: str, commit: str, parent_id: str | None = None, **kw) -> Comment:
    return Comment(id=cid, commit=commit, body=f"body {cid}", created_at=NOW, created_by="alice", parent_id=parent_id, **kw)


@pytest.fixture
def store(tmp_path):
    s = SQLiteStore.create(tmp_path / "review" / "review.db")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestOpen:
    def test_create_makes_parent_directory(self, tmp_path):
        path = tmp_path / "a" / "b" / "review.db"
        s = SQLiteStore.create(path)
        assert path.exists()
        assert s.path == str(path)
        s.close()

    def test_open_missing_file_raises(self, tmp_path):
        with pytest.raises(StorageError, match="failed to open review database"):
            SQLiteStore.open(tmp_path / "missing.db")

    def test_wal_and_foreign_keys_enabled(self, store):
        assert store._conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        assert store._conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "review.db"
        a = SQLiteStore.create(path)
        _seed(a)
        a.close()

        b = SQLiteStore.open(path)
        assert b.get_session().branch == "feature/test"
        assert [c.position for c in b.list_commits()] == [0, 1, 2]
        b.close()


# ---------------------------------------------------------------------------
# Session, commits and reviewers
# ---------------------------------------------------------------------------


class TestSessionRows:
    def test_no_session_initially(self, store):
        assert store.get_session() is None

    def test_seeded_session(self, store):
        _seed(store)
        assert store.get_session() == Session(base_ref="0" * 40, branch="feature/test", created_at=NOW)

    def test_commits_ordered_by_position(self, store):
        commits = _seed(store)
        assert store.list_commits() == commits

    def test_duplicate_position_rejected(self, store):
        _seed(store)
        with pytest.raises(StorageError, match="insert commit"):
            store.insert_commit(Commit(sha="f" * 40, message="dup", position=0))

    def test_find_commits_by_prefix(self, store):
        commits = _seed(store)
        assert store.find_commits_by_prefix("2222") == [commits[1]]
        assert store.find_commits_by_prefix("9") == []

    def test_find_commits_by_prefix_ignores_case(self, store):
        commits = _seed(store, n_commits=11)
        assert store.find_commits_by_prefix("AAAA") == [commits[9]]

    def test_reviewer_cursor(self, store):
        commits = _seed(store)
        store.insert_reviewer(Reviewer(name="security"))
        store.update_reviewer_current("security", commits[2].sha)

        assert store.get_reviewer("security").current_sha == commits[2].sha
        assert store.get_reviewer("").current_sha is None
        assert [r.name for r in store.list_reviewers()] == ["", "security"]

    def test_update_unknown_reviewer_raises(self, store):
        commits = _seed(store)
        with pytest.raises(StorageError, match="reviewer 'ghost'"):
            store.update_reviewer_current("ghost", commits[0].sha)

    def test_cursor_must_reference_a_commit(self, store):
        _seed(store)
        with pytest.raises(StorageError):
            store.update_reviewer_current("", "e" * 40)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TestTransaction:
    def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert_session(Session(base_ref="0" * 40, branch="b", created_at=NOW))
                raise RuntimeError("boom")
        assert store.get_session() is None

    def test_failed_statement_rolls_back_earlier_ones(self, store):
        with pytest.raises(StorageError):
            with store.transaction():
                store.insert_session(Session(base_ref="0" * 40, branch="b", created_at=NOW))
                store.insert_commit(Commit(sha="1" * 40, message="a", position=0))
                store.insert_commit(Commit(sha="2" * 40, message="b", position=0))
        assert store.get_session() is None
        assert store.list_commits() == []

    def test_nested_transaction_joins_outer(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.insert_session(Session(base_ref="0" * 40, branch="b", created_at=NOW))
                raise RuntimeError("boom")
        assert store.get_session() is None

    def test_second_connection_sees_committed_rows(self, store):
        _seed(store)
        other = SQLiteStore.open(store.path)
        with other.transaction(write=False):
            assert len(other.list_commits()) == 3
        other.close()


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class TestComments:
    def test_insert_and_get(self, store):
        commits = _seed(store)
        c = _comment("0001", commits[0].sha, file="app.js", start_line=3, end_line=5)
        store.insert_comment(c)
        assert store.get_comment("0001") == c
        assert store.get_comment("nope") is None

    def test_comment_needs_existing_commit(self, store):
        _seed(store)
        with pytest.raises(StorageError, match="save comment"):
            store.insert_comment(_comment("0001", "e" * 40))

    def test_list_ordered_by_id(self, store):
        commits = _seed(store)
        for cid in ("0003", "0001", "0002"):
            store.insert_comment(_comment(cid, commits[0].sha))
        assert [c.id for c in store.list_comments()] == ["0001", "0002", "0003"]

    def test_find_by_prefix(self, store):
        commits = _seed(store)
        store.insert_comment(_comment("abc1", commits[0].sha))
        store.insert_comment(_comment("abc2", commits[0].sha))
        assert [c.id for c in store.find_comments_by_prefix("abc")] == ["abc1", "abc2"]
        assert [c.id for c in store.find_comments_by_prefix("abc2")] == ["abc2"]
        assert [c.id for c in store.find_comments_by_prefix("ABC2")] == ["abc2"]

    def test_deleting_root_cascades(self, store):
        commits = _seed(store)
        store.insert_comment(_comment("r", commits[0].sha))
        store.insert_comment(_comment("r1", commits[0].sha, parent_id="r"))
        store.insert_comment(_comment("r2", commits[0].sha, parent_id="r"))
        store.insert_comment(_comment("r11", commits[0].sha, parent_id="r1"))

        store.delete_comment("r")
        assert store.list_comments() == []

    def test_reparent_children(self, store):
        commits = _seed(store)
        store.insert_comment(_comment("r", commits[0].sha))
        store.insert_comment(_comment("m", commits[0].sha, parent_id="r"))
        store.insert_comment(_comment("c", commits[0].sha, parent_id="m"))

        assert store.reparent_children("m", "r") == 1
        store.delete_comment("m")
        assert store.get_comment("c").parent_id == "r"

    def test_resolve_only_unresolved_roots(self, store):
        commits = _seed(store)
        store.insert_comment(_comment("r", commits[0].sha))
        store.insert_comment(_comment("x", commits[0].sha, parent_id="r"))

        assert store.resolve_comment("x", NOW, "bob") is False
        assert store.resolve_comment("r", NOW, "bob") is True
        assert store.resolve_comment("r", NOW, "bob") is False

        resolved = store.get_comment("r")
        assert resolved.resolved_at == NOW
        assert resolved.resolved_by == "bob"

    def test_unresolve_clears_both_fields(self, store):
        commits = _seed(store)
        store.insert_comment(_comment("r", commits[0].sha))
        assert store.unresolve_comment("r") is False
        store.resolve_comment("r", NOW, "bob")

        assert store.unresolve_comment("r") is True
        c = store.get_comment("r")
        assert c.resolved_at is None
        assert c.resolved_by is None

    def test_schema_rejects_resolved_reply(self, store):
        commits = _seed(store)
        store.insert_comment(_comment("r", commits[0].sha))
        with pytest.raises(StorageError):
            store.insert_comment(_comment("x", commits[0].sha, parent_id="r", resolved_at=NOW, resolved_by="bob"))

    def test_schema_rejects_half_resolution(self, store):
        commits = _seed(store)
        with pytest.raises(StorageError):
            store.insert_comment(_comment("r", commits[0].sha, resolved_at=NOW))

