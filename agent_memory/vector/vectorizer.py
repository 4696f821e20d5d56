"""
TF-IDF vectorization and cosine similarity over sparse term maps.
"""

from collections import Counter
from typing import Dict, Mapping, Optional

import numpy as np

from .idf_cache import IdfCache
from .tokenizer import Tokenizer

SparseVector = Dict[str, float]


def normalize_vector(vector: Mapping[str, float]) -> SparseVector:
    """
    Scale vector to unit Euclidean norm. A zero vector is returned unchanged.
    """
    if not vector:
        return {}

    weights = np.fromiter(vector.values(), dtype=np.float64, count=len(vector))
    magnitude = float(np.linalg.norm(weights))

    if magnitude == 0:
        return dict(vector)

    return {term: float(w) for term, w in zip(vector.keys(), weights / magnitude)}


def cosine_similarity(vector1: Mapping[str, float], vector2: Mapping[str, float]) -> float:
    """
    Cosine similarity over the union of both vectors' terms.

    Terms missing from one side count as 0. Returns 0.0 when either vector
    has zero magnitude.
    """
    terms = list(dict.fromkeys([*vector1.keys(), *vector2.keys()]))
    if not terms:
        return 0.0

    a = np.array([vector1.get(t, 0.0) for t in terms], dtype=np.float64)
    b = np.array([vector2.get(t, 0.0) for t in terms], dtype=np.float64)

    magnitude1 = float(np.linalg.norm(a))
    magnitude2 = float(np.linalg.norm(b))
    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    similarity = float(np.dot(a, b)) / (magnitude1 * magnitude2)
    # guard against floating drift just outside [-1, 1]
    return max(-1.0, min(1.0, similarity))


class TfIdfVectorizer:
    """
    Builds L2-normalized sparse TF-IDF vectors.

    tf(term) = count(term) / total_tokens, weight = tf * idf(term).
    """

    def __init__(self, tokenizer: Tokenizer, idf_cache: IdfCache):
        """
        Initialize vectorizer.

        Args:
            tokenizer: Tokenizer used for both documents and queries
            idf_cache: Source of per-term IDF values
        """
        self.tokenizer = tokenizer
        self.idf_cache = idf_cache

    def vectorize(self, text: str, language: Optional[str] = None) -> SparseVector:
        """
        Vectorize text.

        Args:
            text: Input text
            language: Language code (detected when None)

        Returns:
            Term -> weight map, empty if no tokens survive
        """
        tokens = self.tokenizer.tokenize(text, language)
        if not tokens:
            return {}

        counts = Counter(tokens)
        total = len(tokens)

        vector = {
            term: (count / total) * self.idf_cache.idf(term)
            for term, count in counts.items()
        }

        return normalize_vector(vector)
