"""
TF-IDF engine.

Bundles the tokenizer, IDF cache, vectorizer and ranker behind one object.
Language overrides never mutate a shared engine: with_languages() returns
a sibling engine over a merged registry that shares the same IDF cache.
"""

import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .idf_cache import IdfCache
from .languages import LanguageRegistry
from .recall import SimilarityRanker
from .schemas import SearchHit, SemanticMemoryRecord
from .store import SemanticMemoryStore
from .tokenizer import Tokenizer
from .vectorizer import SparseVector, TfIdfVectorizer, cosine_similarity

STATISTICS_SAMPLE_SIZE = 100


class TfIdfEngine:
    """
    Vector space operations for semantic memory.

    Usage:
        >>> engine = TfIdfEngine(LanguageRegistry.builtin(), idf_cache, store)
        >>> engine.vectorize("the cat sat on the mat")
        {'cat': 0.577, 'sat': 0.577, 'mat': 0.577}
    """

    def __init__(
        self,
        registry: LanguageRegistry,
        idf_cache: IdfCache,
        store: SemanticMemoryStore,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize engine.

        Args:
            registry: Language tables
            idf_cache: Shared IDF cache
            store: Record store (used for statistics)
            clock: Time source for recency decay
        """
        self.registry = registry
        self.idf_cache = idf_cache
        self.store = store
        self.clock = clock

        self.tokenizer = Tokenizer(registry)
        self.vectorizer = TfIdfVectorizer(self.tokenizer, idf_cache)
        self.ranker = SimilarityRanker(self.vectorizer, clock)

    def with_languages(self, overrides: Optional[Mapping[str, Mapping[str, Any]]]) -> "TfIdfEngine":
        """Engine using a registry with overrides merged in (self when there are none)."""
        if not overrides:
            return self
        return TfIdfEngine(self.registry.merged(overrides), self.idf_cache, self.store, self.clock)

    def detect_language(self, text: str) -> str:
        return self.tokenizer.detect_language(text)

    def tokenize(self, text: str, language: Optional[str] = None) -> List[str]:
        return self.tokenizer.tokenize(text, language)

    def extract_keywords(self, text: str, language: Optional[str] = None) -> List[str]:
        return self.tokenizer.extract_keywords(text, language)

    def vectorize(self, text: str) -> SparseVector:
        return self.vectorizer.vectorize(text)

    def cosine_similarity(self, vector1: Mapping[str, float], vector2: Mapping[str, float]) -> float:
        return cosine_similarity(vector1, vector2)

    def find_similar(
        self,
        query: str,
        corpus: Iterable[SemanticMemoryRecord],
        limit: int = 5,
        threshold: float = 0.1,
        boost_recent: bool = True,
    ) -> List[SearchHit]:
        return self.ranker.find_similar(query, corpus, limit, threshold, boost_recent)

    def clear_cache(self) -> int:
        """Drop cached IDF values (after bulk corpus changes)."""
        return self.idf_cache.clear()

    def get_available_languages(self) -> Dict[str, str]:
        return self.registry.available()

    def get_statistics(self) -> dict:
        """
        Vector space statistics over all profiles.

        Average vector size and vocabulary are estimated from a sample of
        the first 100 records.
        """
        total = self.store.count_all()
        average_vector_size = 0.0
        vocabulary = set()

        if total > 0:
            sample = self.store.sample(STATISTICS_SAMPLE_SIZE)
            features = 0
            for record in sample:
                features += record.vector_size
                vocabulary.update(record.vector)
            average_vector_size = features / len(sample)

        return {
            "total_memories": total,
            "average_vector_size": round(average_vector_size, 1),
            "estimated_vocabulary_size": len(vocabulary),
            "cache_hits": self.idf_cache.hits,
            "languages": self.registry.codes(),
            "registry_version": self.registry.version,
        }
