"""
Working memory persistence layer.

Stores WorkingMemoryItem rows in the memory_items table, ordered by
position within a profile.
"""

import json
import time
from typing import List, Optional

from agent_memory.persist.sqlite_store import MemoryDatabase
from .schemas import ProfileId, WorkingMemoryItem

_COLUMNS = "id, profile_id, content, position, metadata, created_at, updated_at"


class WorkingMemoryStore:
    """
    Repository for working memory items.

    Features:
    - Ordered listing per profile
    - Oldest-item lookup for overflow eviction
    - Position renumbering to keep 1..N contiguous
    - Case-sensitive substring search
    """

    def __init__(self, db: MemoryDatabase):
        """
        Initialize working memory store.

        Args:
            db: Shared memory database
        """
        self.db = db

    def _row_to_item(self, row: tuple) -> WorkingMemoryItem:
        return WorkingMemoryItem(
            id=row[0],
            profile_id=row[1],
            content=row[2],
            position=max(1, row[3]),
            metadata=json.loads(row[4]) if row[4] else {},
            created_at=row[5],
            updated_at=row[6],
        )

    def list_items(self, profile_id: ProfileId) -> List[WorkingMemoryItem]:
        """List a profile's items ordered by position."""
        rows = self.db.query(
            f"SELECT {_COLUMNS} FROM memory_items WHERE profile_id = ? ORDER BY position, id",
            (str(profile_id),),
        )
        return [self._row_to_item(r) for r in rows]

    def count(self, profile_id: ProfileId) -> int:
        """Count a profile's items."""
        return self.db.query_one(
            "SELECT COUNT(*) FROM memory_items WHERE profile_id = ?",
            (str(profile_id),),
        )[0]

    def create(self, profile_id: ProfileId, content: str, position: int) -> WorkingMemoryItem:
        """
        Insert a new item.

        Args:
            profile_id: Owning profile
            content: Item text
            position: 1-based position

        Returns:
            Created WorkingMemoryItem
        """
        now = time.time()
        cursor = self.db.execute(
            "INSERT INTO memory_items (profile_id, content, position, metadata, created_at, updated_at) "
            "VALUES (?, ?, ?, NULL, ?, ?)",
            (str(profile_id), content, position, now, now),
        )
        return WorkingMemoryItem(
            id=cursor.lastrowid,
            profile_id=str(profile_id),
            content=content,
            position=position,
            created_at=now,
            updated_at=now,
        )

    def append(self, profile_id: ProfileId, content: str) -> WorkingMemoryItem:
        """Insert an item after the current last position."""
        return self.create(profile_id, content, self.count(profile_id) + 1)

    def oldest(self, profile_id: ProfileId) -> Optional[WorkingMemoryItem]:
        """Item with the lowest position, or None when empty."""
        row = self.db.query_one(
            f"SELECT {_COLUMNS} FROM memory_items WHERE profile_id = ? ORDER BY position, id LIMIT 1",
            (str(profile_id),),
        )
        return self._row_to_item(row) if row else None

    def delete(self, item_id: int) -> bool:
        """Delete one item by row id."""
        cursor = self.db.execute("DELETE FROM memory_items WHERE id = ?", (item_id,))
        return cursor.rowcount > 0

    def delete_all(self, profile_id: ProfileId) -> int:
        """Delete all items of a profile, returning how many were removed."""
        cursor = self.db.execute(
            "DELETE FROM memory_items WHERE profile_id = ?",
            (str(profile_id),),
        )
        return cursor.rowcount

    def update_content(self, item_id: int, content: str) -> None:
        """Rewrite an item's content in place."""
        self.db.execute(
            "UPDATE memory_items SET content = ?, updated_at = ? WHERE id = ?",
            (content, time.time(), item_id),
        )

    def reorder(self, profile_id: ProfileId) -> None:
        """Renumber positions to 1..N keeping the current relative order."""
        with self.db.transaction():
            for index, item in enumerate(self.list_items(profile_id), start=1):
                if item.position != index:
                    self.db.execute(
                        "UPDATE memory_items SET position = ?, updated_at = ? WHERE id = ?",
                        (index, time.time(), item.id),
                    )

    def search(self, profile_id: ProfileId, query: str) -> List[WorkingMemoryItem]:
        """Items whose content contains query (case-sensitive)."""
        rows = self.db.query(
            f"SELECT {_COLUMNS} FROM memory_items "
            "WHERE profile_id = ? AND instr(content, ?) > 0 ORDER BY position, id",
            (str(profile_id), query),
        )
        return [self._row_to_item(r) for r in rows]
