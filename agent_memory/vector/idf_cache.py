"""
IDF cache - time-bounded per-term inverse document frequency.

idf(term) = ln(total_documents / documents_containing_term), or 1.0 when
the corpus is empty or no document contains the term. Values live in the
idf_cache table for a fixed TTL; clear() empties only that table.
"""

import math
import time
from typing import Callable, Optional, Protocol

from agent_memory.persist.sqlite_store import MemoryDatabase

DEFAULT_IDF_TTL_SECONDS = 3600


class DocumentCounter(Protocol):
    """Corpus-wide document counts the IDF is computed from."""

    def count_all(self) -> int: ...

    def count_containing(self, term: str) -> int: ...


class IdfCache:
    """
    SQLite-backed IDF cache with TTL.

    Concurrent misses for the same term may both recompute; the last write
    wins, which is harmless because the computation is idempotent.
    """

    def __init__(
        self,
        db: MemoryDatabase,
        corpus: DocumentCounter,
        ttl_seconds: int = DEFAULT_IDF_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize IDF cache.

        Args:
            db: Database holding the idf_cache table
            corpus: Source of document counts
            ttl_seconds: Lifetime of a cached value
            clock: Time source (seconds since epoch)
        """
        self.db = db
        self.corpus = corpus
        self.ttl_seconds = ttl_seconds
        self.clock = clock

        self.hits = 0
        self.misses = 0

    def compute(self, term: str) -> float:
        """Compute IDF from the corpus without touching the cache."""
        total = self.corpus.count_all()
        if total == 0:
            return 1.0

        containing = self.corpus.count_containing(term)
        if containing == 0:
            return 1.0

        return math.log(total / containing)

    def get(self, term: str) -> Optional[float]:
        """Cached value if present and not expired."""
        row = self.db.query_one("SELECT value, ts FROM idf_cache WHERE term = ?", (term,))
        if row is None:
            return None
        value, ts = row
        if self.clock() - ts >= self.ttl_seconds:
            return None
        return value

    def idf(self, term: str) -> float:
        """
        IDF for term, computed and cached on a miss.
        """
        cached = self.get(term)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        value = self.compute(term)
        self.db.execute(
            "INSERT OR REPLACE INTO idf_cache (term, value, ts) VALUES (?, ?, ?)",
            (term, value, self.clock()),
        )
        return value

    def clear(self) -> int:
        """
        Drop every cached IDF value.

        Returns:
            Number of entries removed
        """
        return self.db.purge_table("idf_cache")

    def get_stats(self) -> dict:
        """Cache statistics."""
        total = self.hits + self.misses
        return {
            "entries": self.db.stats("idf_cache")["count"],
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total > 0 else 0.0,
            "ttl_seconds": self.ttl_seconds,
        }

    def reset_stats(self) -> None:
        self.hits = 0
        self.misses = 0
