"""
Semantic memory persistence layer.

Records live in the vector_memories table with the sparse vector and the
keyword list stored as JSON text. Document counts for IDF are taken across
every profile.
"""

import json
import time
from typing import Iterable, List, Optional

from agent_memory.persist.sqlite_store import MemoryDatabase
from .schemas import SemanticMemoryRecord, clamp_importance

_COLUMNS = "id, profile_id, content, tfidf_vector, keywords, importance, created_at, updated_at"


class SemanticMemoryStore:
    """
    Repository for semantic memory records.

    Also serves as the document counter behind the IDF cache.
    """

    def __init__(self, db: MemoryDatabase, clock=time.time):
        """
        Initialize semantic memory store.

        Args:
            db: Shared memory database
            clock: Time source for created_at/updated_at
        """
        self.db = db
        self.clock = clock

    def _row_to_record(self, row: tuple) -> SemanticMemoryRecord:
        return SemanticMemoryRecord(
            id=row[0],
            profile_id=row[1],
            content=row[2],
            vector=json.loads(row[3]) if row[3] else {},
            keywords=json.loads(row[4]) if row[4] else [],
            importance=clamp_importance(row[5]),
            created_at=row[6],
            updated_at=row[7],
        )

    def add(
        self,
        profile_id,
        content: str,
        vector: dict,
        keywords: List[str],
        importance: float = 1.0,
    ) -> SemanticMemoryRecord:
        """
        Insert a record.

        Returns:
            Created SemanticMemoryRecord
        """
        now = self.clock()
        importance = clamp_importance(importance)
        cursor = self.db.execute(
            f"INSERT INTO vector_memories ({_COLUMNS.split(', ', 1)[1]}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(profile_id),
                content,
                json.dumps(vector, ensure_ascii=False),
                json.dumps(keywords, ensure_ascii=False),
                importance,
                now,
                now,
            ),
        )
        return SemanticMemoryRecord(
            id=cursor.lastrowid,
            profile_id=str(profile_id),
            content=content,
            vector=vector,
            keywords=keywords,
            importance=importance,
            created_at=now,
            updated_at=now,
        )

    def get(self, profile_id, memory_id: int) -> Optional[SemanticMemoryRecord]:
        """Record by id, scoped to the profile."""
        row = self.db.query_one(
            f"SELECT {_COLUMNS} FROM vector_memories WHERE id = ? AND profile_id = ?",
            (memory_id, str(profile_id)),
        )
        return self._row_to_record(row) if row else None

    def delete(self, profile_id, memory_id: int) -> bool:
        cursor = self.db.execute(
            "DELETE FROM vector_memories WHERE id = ? AND profile_id = ?",
            (memory_id, str(profile_id)),
        )
        return cursor.rowcount > 0

    def list(self, profile_id, limit: Optional[int] = None) -> List[SemanticMemoryRecord]:
        """Records of a profile, newest first."""
        sql = f"SELECT {_COLUMNS} FROM vector_memories WHERE profile_id = ? ORDER BY created_at DESC, id DESC"
        params: tuple = (str(profile_id),)
        if limit is not None:
            sql += " LIMIT ?"
            params += (limit,)
        return [self._row_to_record(r) for r in self.db.query(sql, params)]

    def count(self, profile_id) -> int:
        return self.db.query_one(
            "SELECT COUNT(*) FROM vector_memories WHERE profile_id = ?",
            (str(profile_id),),
        )[0]

    def count_all(self) -> int:
        """Total records across all profiles."""
        return self.db.query_one("SELECT COUNT(*) FROM vector_memories")[0]

    def count_containing(self, term: str) -> int:
        """Records across all profiles whose vector has term as a feature."""
        return self.db.query_one(
            "SELECT COUNT(*) FROM vector_memories "
            "WHERE EXISTS (SELECT 1 FROM json_each(vector_memories.tfidf_vector) WHERE key = ?)",
            (term,),
        )[0]

    def delete_oldest(self, profile_id, count: int) -> int:
        """Delete the count oldest records of a profile."""
        if count <= 0:
            return 0
        cursor = self.db.execute(
            "DELETE FROM vector_memories WHERE id IN ("
            "SELECT id FROM vector_memories WHERE profile_id = ? ORDER BY created_at ASC, id ASC LIMIT ?)",
            (str(profile_id), count),
        )
        return cursor.rowcount

    def clear(self, profile_id) -> int:
        cursor = self.db.execute(
            "DELETE FROM vector_memories WHERE profile_id = ?",
            (str(profile_id),),
        )
        return cursor.rowcount

    def search_by_keywords(self, profile_id, keywords: Iterable[str]) -> List[SemanticMemoryRecord]:
        """Records whose keyword list contains every given keyword, newest first."""
        wanted = [k.strip().lower() for k in keywords if k and k.strip()]
        if not wanted:
            return []
        return [record for record in self.list(profile_id) if all(record.has_keyword(k) for k in wanted)]

    def update_importance(self, profile_id, memory_id: int, importance: float) -> bool:
        cursor = self.db.execute(
            "UPDATE vector_memories SET importance = ?, updated_at = ? WHERE id = ? AND profile_id = ?",
            (clamp_importance(importance), self.clock(), memory_id, str(profile_id)),
        )
        return cursor.rowcount > 0

    def sample(self, limit: int = 100) -> List[SemanticMemoryRecord]:
        """Up to limit records across all profiles."""
        rows = self.db.query(f"SELECT {_COLUMNS} FROM vector_memories ORDER BY id LIMIT ?", (limit,))
        return [self._row_to_record(r) for r in rows]
