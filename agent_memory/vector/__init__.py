"""
Semantic memory subsystem.

Provides:
- Language registry and language-aware tokenizer
- TF-IDF vectorization with a TTL-bounded IDF cache
- Cosine similarity ranking with recency decay
- Semantic memory store, service and JSON/text transfer
"""

from .languages import LanguageProfile, LanguageRegistry, LanguageResourceError
from .tokenizer import Tokenizer, stem
from .idf_cache import IdfCache
from .vectorizer import TfIdfVectorizer, cosine_similarity, normalize_vector
from .schemas import SearchHit, SemanticMemoryRecord
from .recall import SimilarityRanker, recency_factor
from .store import SemanticMemoryStore
from .engine import TfIdfEngine
from .service import (
    VectorMemoryService,
    format_memory_link,
    render_recent_memories,
    render_search_results,
    truncate_content,
)
from .transfer import VectorMemoryTransfer

__all__ = [
    "LanguageProfile",
    "LanguageRegistry",
    "LanguageResourceError",
    "Tokenizer",
    "stem",
    "IdfCache",
    "TfIdfVectorizer",
    "cosine_similarity",
    "normalize_vector",
    "SearchHit",
    "SemanticMemoryRecord",
    "SimilarityRanker",
    "recency_factor",
    "SemanticMemoryStore",
    "TfIdfEngine",
    "VectorMemoryService",
    "format_memory_link",
    "render_recent_memories",
    "render_search_results",
    "truncate_content",
    "VectorMemoryTransfer",
]
