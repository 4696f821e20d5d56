"""
SQLite-backed storage for the memory subsystem.

One database file holds three tables:
- memory_items: working memory lines (profile_id, content, position)
- vector_memories: semantic memory records with JSON vector/keywords
- idf_cache: per-term IDF values with computation timestamp (TTL)

Every memory entity is owned by a profile; delete_profile() cascades.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Union

TABLES = ("memory_items", "vector_memories", "idf_cache")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS memory_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        profile_id TEXT NOT NULL,
        content TEXT NOT NULL,
        position INTEGER NOT NULL DEFAULT 0,
        metadata TEXT,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_memory_items_profile_position ON memory_items(profile_id, position)",
    """
    CREATE TABLE IF NOT EXISTS vector_memories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        profile_id TEXT NOT NULL,
        content TEXT NOT NULL,
        tfidf_vector TEXT NOT NULL,
        keywords TEXT,
        importance REAL NOT NULL DEFAULT 1.0,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_vector_memories_profile_created ON vector_memories(profile_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_vector_memories_profile_importance ON vector_memories(profile_id, importance)",
    """
    CREATE TABLE IF NOT EXISTS idf_cache (
        term TEXT PRIMARY KEY,
        value REAL NOT NULL,
        ts REAL NOT NULL
    )
    """,
)


class StorageError(Exception):
    """Raised when the underlying SQLite database fails."""


class MemoryDatabase:
    """
    File-backed (or in-memory) SQLite database shared by the memory stores.

    Statements are serialised through a re-entrant lock so a single
    connection can be used from request threads; WAL mode is enabled
    for file databases.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """
        Open the database and create tables.

        Args:
            db_path: Path to SQLite file, or ":memory:"
        """
        self.in_memory = str(db_path) == ":memory:"
        self.db_path = Path(db_path) if not self.in_memory else None

        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._depth = 0

        try:
            self._conn = sqlite3.connect(
                ":memory:" if self.in_memory else str(self.db_path),
                check_same_thread=False,
                timeout=10.0,
                isolation_level=None,  # explicit BEGIN/COMMIT via transaction()
            )
            if not self.in_memory:
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute("PRAGMA synchronous=NORMAL")
            self._init_tables()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open memory database {db_path}: {e}") from e

    def _init_tables(self) -> None:
        """Create tables and indexes if they don't exist."""
        for statement in _SCHEMA:
            self._conn.execute(statement)

    @contextmanager
    def transaction(self) -> Iterator["MemoryDatabase"]:
        """
        Group statements into one transaction. Nested calls join the
        outer transaction.
        """
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outer:
                    self._conn.execute("ROLLBACK")
                raise
            else:
                self._depth -= 1
                if outer:
                    self._conn.execute("COMMIT")

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """
        Execute a single statement.

        Returns:
            Cursor (rowcount / lastrowid are valid)
        """
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params))
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        """Execute a SELECT and fetch all rows."""
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[tuple]:
        """Execute a SELECT and fetch the first row (or None)."""
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params)).fetchone()
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def delete_profile(self, profile_id: Union[int, str]) -> int:
        """
        Delete every memory entity owned by a profile.

        Returns:
            Number of rows deleted across tables
        """
        deleted = 0
        with self.transaction():
            for table in ("memory_items", "vector_memories"):
                cursor = self.execute(
                    f"DELETE FROM {table} WHERE profile_id = ?",
                    (str(profile_id),),
                )
                deleted += cursor.rowcount
        return deleted

    def purge_table(self, table: str) -> int:
        """
        Delete all entries from a table.

        Returns:
            Number of rows deleted
        """
        self._check_table(table)
        with self.transaction():
            count = self.query_one(f"SELECT COUNT(*) FROM {table}")[0]
            self.execute(f"DELETE FROM {table}")
        return count

    def stats(self, table: str) -> dict:
        """
        Get statistics for a table.

        Returns:
            Dict with count and approximate total_bytes of stored text
        """
        self._check_table(table)
        size_expr = {
            "memory_items": "LENGTH(CAST(content AS BLOB))",
            "vector_memories": "LENGTH(CAST(content AS BLOB)) + LENGTH(CAST(tfidf_vector AS BLOB))",
            "idf_cache": "LENGTH(CAST(term AS BLOB)) + 8",
        }[table]
        row = self.query_one(f"SELECT COUNT(*), SUM({size_expr}) FROM {table}")
        return {
            "count": row[0] or 0,
            "total_bytes": row[1] or 0,
        }

    def vacuum(self) -> None:
        """Reclaim space after large deletions."""
        self.execute("VACUUM")

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            self._conn.close()

    def _check_table(self, table: str) -> None:
        if table not in TABLES:
            raise ValueError(f"Unknown table {table!r}; expected one of {', '.join(TABLES)}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
