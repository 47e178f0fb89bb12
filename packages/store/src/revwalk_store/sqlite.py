"""SQLiteStore — the shared review database.

One database file lives under the repository's common git directory and is
shared by every reviewer process working on the same review. Concurrent
access is the reason for the connection setup below:

- WAL journal mode so readers never block on a writer (the editor front end
  polls while the CLI writes).
- A busy timeout so a second writer waits for the lock instead of failing.
- Foreign keys on, so a comment can never point at a missing commit and
  deleting a root comment cascades to its replies.

The connection runs in autocommit mode. Multi-statement writes go through
transaction(), which takes the write lock up front with BEGIN IMMEDIATE.

Schema:
  session    — singleton row, its presence means a review is in progress
  commits    — commits under review, ordered by a unique 0-based position
  reviewers  — one row per reviewer with a nullable cursor into commits
  comments   — threaded comments, self-referencing through parent_id
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from revwalk_store.errors import StorageError
from revwalk_store.models import Comment, Commit, Reviewer, Session

logger = logging.getLogger(__name__)

_BUSY_TIMEOUT_SECONDS = 10.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS session (
    base_ref    TEXT PRIMARY KEY,
    branch      TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS commits (
    sha       TEXT PRIMARY KEY,
    message   TEXT NOT NULL,
    position  INTEGER NOT NULL UNIQUE CHECK (position >= 0)
);

CREATE TABLE IF NOT EXISTS reviewers (
    name         TEXT PRIMARY KEY,
    current_sha  TEXT REFERENCES commits(sha)
);

CREATE TABLE IF NOT EXISTS comments (
    id           TEXT PRIMARY KEY,
    parent_id    TEXT REFERENCES comments(id) ON DELETE CASCADE,
    "commit"     TEXT NOT NULL REFERENCES commits(sha) ON DELETE CASCADE,
    file         TEXT,
    start_line   INTEGER,
    end_line     INTEGER,
    body         TEXT NOT NULL,
    resolved_at  TEXT,
    resolved_by  TEXT,
    created_at   TEXT NOT NULL,
    created_by   TEXT NOT NULL,
    CHECK ((resolved_at IS NULL) = (resolved_by IS NULL)),
    CHECK (resolved_at IS NULL OR parent_id IS NULL)
);

CREATE INDEX IF NOT EXISTS idx_comments_commit ON comments("commit");
CREATE INDEX IF NOT EXISTS idx_comments_parent ON comments(parent_id);
"""

_COMMENT_COLUMNS = (
    'id, parent_id, "commit", file, start_line, end_line, body, resolved_at, resolved_by, created_at, created_by'
)


class SQLiteStore:
    """Transactional access to one review database file.

    Use create() when starting a review and open() for everything else.
    """

    def __init__(self, conn: sqlite3.Connection, db_path: str):
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._db_path = db_path
        self._in_transaction = False

    @classmethod
    def create(cls, db_path: str | Path) -> SQLiteStore:
        """Create the database directory and file if needed and apply the schema."""
        path = Path(db_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"create review directory {path.parent}") from e
        store = cls(cls._connect(path), str(path))
        try:
            store._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            store.close()
            raise StorageError("create schema") from e
        return store

    @classmethod
    def open(cls, db_path: str | Path) -> SQLiteStore:
        """Open an existing database. Raises StorageError when the file is missing."""
        path = Path(db_path)
        if not path.exists():
            raise StorageError(f"open review database {path}") from FileNotFoundError(str(path))
        return cls(cls._connect(path), str(path))

    @staticmethod
    def _connect(path: Path) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(path), timeout=_BUSY_TIMEOUT_SECONDS, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(f"open review database {path}") from e
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            conn.close()
            raise StorageError("configure database pragmas") from e
        return conn

    @property
    def path(self) -> str:
        return self._db_path

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"close review database {self._db_path}") from e

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self, write: bool = True) -> Iterator[SQLiteStore]:
        """Run a block of statements atomically.

        Commits when the block exits cleanly, rolls back on any exception and
        re-raises it. Nested use joins the outer transaction. With
        write=False the block only reads from one consistent snapshot and does
        not take the write lock.
        """
        if self._in_transaction:
            yield self
            return

        self._execute("BEGIN IMMEDIATE" if write else "BEGIN", (), "begin transaction")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error:
                logger.warning("Rollback failed on %s", self._db_path, exc_info=True)
            raise
        else:
            self._execute("COMMIT", (), "commit transaction")
        finally:
            self._in_transaction = False

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def insert_session(self, session: Session) -> None:
        self._execute(
            "INSERT INTO session (base_ref, branch, created_at) VALUES (?, ?, ?)",
            (session.base_ref, session.branch, session.created_at),
            "insert session",
        )

    def get_session(self) -> Session | None:
        rows = self._query("SELECT base_ref, branch, created_at FROM session LIMIT 1", (), "read session")
        if not rows:
            return None
        row = rows[0]
        return Session(base_ref=row["base_ref"], branch=row["branch"], created_at=row["created_at"])

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def insert_commit(self, commit: Commit) -> None:
        self._execute(
            "INSERT INTO commits (sha, message, position) VALUES (?, ?, ?)",
            (commit.sha, commit.message, commit.position),
            f"insert commit {commit.sha}",
        )

    def list_commits(self) -> list[Commit]:
        rows = self._query("SELECT sha, message, position FROM commits ORDER BY position", (), "list commits")
        return [self._row_to_commit(r) for r in rows]

    def find_commits_by_prefix(self, prefix: str) -> list[Commit]:
        """Return every commit whose SHA starts with prefix, ordered by position."""
        prefix = prefix.lower()
        rows = self._query(
            "SELECT sha, message, position FROM commits WHERE substr(sha, 1, ?) = ? ORDER BY position",
            (len(prefix), prefix),
            f"look up commit {prefix}",
        )
        return [self._row_to_commit(r) for r in rows]

    # ------------------------------------------------------------------
    # Reviewers
    # ------------------------------------------------------------------

    def insert_reviewer(self, reviewer: Reviewer) -> None:
        self._execute(
            "INSERT INTO reviewers (name, current_sha) VALUES (?, ?)",
            (reviewer.name, reviewer.current_sha),
            f"insert reviewer {reviewer.name!r}",
        )

    def get_reviewer(self, name: str) -> Reviewer | None:
        rows = self._query(
            "SELECT name, current_sha FROM reviewers WHERE name = ?",
            (name,),
            f"read reviewer {name!r}",
        )
        return Reviewer(name=rows[0]["name"], current_sha=rows[0]["current_sha"]) if rows else None

    def list_reviewers(self) -> list[Reviewer]:
        rows = self._query("SELECT name, current_sha FROM reviewers ORDER BY name", (), "list reviewers")
        return [Reviewer(name=r["name"], current_sha=r["current_sha"]) for r in rows]

    def update_reviewer_current(self, name: str, sha: str | None) -> None:
        cur = self._execute(
            "UPDATE reviewers SET current_sha = ? WHERE name = ?",
            (sha, name),
            f"update position of reviewer {name!r}",
        )
        if cur.rowcount == 0:
            raise StorageError(f"update position of reviewer {name!r}") from LookupError(name)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def insert_comment(self, comment: Comment) -> None:
        self._execute(
            f"INSERT INTO comments ({_COMMENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                comment.id,
                comment.parent_id,
                comment.commit,
                comment.file,
                comment.start_line,
                comment.end_line,
                comment.body,
                comment.resolved_at,
                comment.resolved_by,
                comment.created_at,
                comment.created_by,
            ),
            f"save comment {comment.id}",
        )

    def get_comment(self, comment_id: str) -> Comment | None:
        rows = self._query(
            f"SELECT {_COMMENT_COLUMNS} FROM comments WHERE id = ?",
            (comment_id,),
            f"read comment {comment_id}",
        )
        return self._row_to_comment(rows[0]) if rows else None

    def find_comments_by_prefix(self, prefix: str) -> list[Comment]:
        prefix = prefix.lower()
        rows = self._query(
            f"SELECT {_COMMENT_COLUMNS} FROM comments WHERE substr(id, 1, ?) = ? ORDER BY id",
            (len(prefix), prefix),
            f"look up comment {prefix}",
        )
        return [self._row_to_comment(r) for r in rows]

    def list_comments(self) -> list[Comment]:
        """Return every comment ordered by id, i.e. creation order."""
        rows = self._query(f"SELECT {_COMMENT_COLUMNS} FROM comments ORDER BY id", (), "list comments")
        return [self._row_to_comment(r) for r in rows]

    def reparent_children(self, old_parent_id: str, new_parent_id: str | None) -> int:
        cur = self._execute(
            "UPDATE comments SET parent_id = ? WHERE parent_id = ?",
            (new_parent_id, old_parent_id),
            f"re-parent replies of {old_parent_id}",
        )
        return cur.rowcount

    def delete_comment(self, comment_id: str) -> None:
        self._execute("DELETE FROM comments WHERE id = ?", (comment_id,), f"delete comment {comment_id}")

    def resolve_comment(self, comment_id: str, resolved_at: str, resolved_by: str) -> bool:
        """Mark a root resolved. Returns False when no unresolved root matched."""
        cur = self._execute(
            "UPDATE comments SET resolved_at = ?, resolved_by = ? "
            "WHERE id = ? AND parent_id IS NULL AND resolved_at IS NULL",
            (resolved_at, resolved_by, comment_id),
            f"resolve comment {comment_id}",
        )
        return cur.rowcount > 0

    def unresolve_comment(self, comment_id: str) -> bool:
        cur = self._execute(
            "UPDATE comments SET resolved_at = NULL, resolved_by = NULL "
            "WHERE id = ? AND parent_id IS NULL AND resolved_at IS NOT NULL",
            (comment_id,),
            f"unresolve comment {comment_id}",
        )
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _execute(self, sql: str, params: tuple, action: str) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(action) from e

    def _query(self, sql: str, params: tuple, action: str) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(action) from e

    @staticmethod
    def _row_to_commit(row: sqlite3.Row) -> Commit:
        return Commit(sha=row["sha"], message=row["message"], position=row["position"])

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> Comment:
        return Comment(
            id=row["id"],
            parent_id=row["parent_id"],
            commit=row["commit"],
            file=row["file"],
            start_line=row["start_line"],
            end_line=row["end_line"],
            body=row["body"],
            resolved_at=row["resolved_at"],
            resolved_by=row["resolved_by"],
            created_at=row["created_at"],
            created_by=row["created_by"],
        )
