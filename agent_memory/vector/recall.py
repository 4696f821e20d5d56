"""
Similarity ranking with recency decay.

score = cosine(query, record) * max(0.1, 1 - age_days / 30) when boosting
recent records, plain cosine otherwise.
"""

import time
from typing import Callable, Iterable, List

from .schemas import SearchHit, SemanticMemoryRecord
from .vectorizer import TfIdfVectorizer, cosine_similarity

RECENCY_WINDOW_DAYS = 30
MIN_RECENCY_FACTOR = 0.1


def recency_factor(age_days: float) -> float:
    """Linear decay over 30 days, never below 0.1."""
    return max(MIN_RECENCY_FACTOR, 1 - age_days / RECENCY_WINDOW_DAYS)


class SimilarityRanker:
    """
    Ranks stored records against a free-text query.

    Usage:
        >>> ranker = SimilarityRanker(vectorizer)
        >>> hits = ranker.find_similar("cats are great", records, limit=3)
        >>> hits[0].score
        0.71
    """

    def __init__(self, vectorizer: TfIdfVectorizer, clock: Callable[[], float] = time.time):
        """
        Initialize ranker.

        Args:
            vectorizer: Vectorizer used for the query
            clock: Time source for record age (seconds since epoch)
        """
        self.vectorizer = vectorizer
        self.clock = clock

    def find_similar(
        self,
        query: str,
        corpus: Iterable[SemanticMemoryRecord],
        limit: int = 5,
        threshold: float = 0.1,
        boost_recent: bool = True,
    ) -> List[SearchHit]:
        """
        Find records most similar to query.

        Args:
            query: Search text
            corpus: Candidate records
            limit: Maximum number of hits
            threshold: Minimum (possibly boosted) score
            boost_recent: Apply recency decay

        Returns:
            Hits sorted by score descending; input order breaks ties
        """
        query_vector = self.vectorizer.vectorize(query)
        if not query_vector:
            return []

        now = self.clock()
        hits = []
        for record in corpus:
            if not record.vector:
                continue

            score = cosine_similarity(query_vector, record.vector)
            if boost_recent:
                score *= recency_factor(record.age_in_days(now))

            if score >= threshold:
                hits.append(SearchHit(record=record, score=score))

        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]
