"""
Semantic memory data models.
"""

import time
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

MIN_IMPORTANCE = 0.1
MAX_IMPORTANCE = 5.0
SECONDS_PER_DAY = 86400


def clamp_importance(value: float) -> float:
    """Clamp importance into [0.1, 5.0]."""
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, value))


class SemanticMemoryRecord(BaseModel):
    """
    A piece of content stored with its TF-IDF vector.

    The vector is L2-normalized, or empty when the content produced no
    tokens. Records never expire; deletion is explicit.
    """

    id: Optional[int] = Field(None, description="Storage row id")
    profile_id: str = Field(..., description="Owning profile identifier")
    content: str = Field(..., description="Stored text")
    vector: Dict[str, float] = Field(default_factory=dict, description="Sparse TF-IDF vector")
    keywords: List[str] = Field(default_factory=list, description="Unique tokens of the content")
    importance: float = Field(1.0, ge=MIN_IMPORTANCE, le=MAX_IMPORTANCE)
    created_at: float = Field(default_factory=time.time, description="Unix timestamp")
    updated_at: float = Field(default_factory=time.time, description="Unix timestamp")

    @property
    def vector_size(self) -> int:
        """Number of features in the vector."""
        return len(self.vector)

    def age_in_days(self, now: Optional[float] = None) -> float:
        """
        Fractional days since creation (never negative).

        Not floored to whole days, so the recency factor decays continuously
        instead of in daily steps.
        """
        now = time.time() if now is None else now
        return max(0.0, (now - self.created_at) / SECONDS_PER_DAY)

    def has_keyword(self, keyword: str) -> bool:
        """Case-insensitive keyword membership."""
        return keyword.lower() in (k.lower() for k in self.keywords)

    def boost(self, amount: float = 0.1) -> float:
        """Raise importance (capped at 5.0) and return it."""
        self.importance = clamp_importance(self.importance + amount)
        return self.importance

    def diminish(self, amount: float = 0.1) -> float:
        """Lower importance (floored at 0.1) and return it."""
        self.importance = clamp_importance(self.importance - amount)
        return self.importance


class SearchHit(BaseModel):
    """A ranked search result."""

    record: SemanticMemoryRecord
    score: float = Field(..., description="Cosine similarity, recency-boosted when enabled")
