"""
Semantic (vector) memory service.

Stores content with TF-IDF vectors per profile and retrieves it by
meaning. Like the working memory service, every operation reports
failures through OperationResult instead of raising.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from agent_memory.config.settings import VectorMemoryConfig
from agent_memory.memory.schemas import OperationResult, ProfileId
from .engine import TfIdfEngine
from .schemas import SearchHit, SemanticMemoryRecord, clamp_importance
from .store import SemanticMemoryStore

logger = structlog.get_logger(__name__)

VectorConfigLike = Union[VectorMemoryConfig, Mapping[str, Any], None]

RECENT_LIMIT_MAX = 20
IMPORTANCE_STEP = 0.1
DELETE_MATCH_THRESHOLD = 0.3
LINK_PREVIEW_LENGTH = 50
DELETE_PREVIEW_LENGTH = 60


def truncate_content(content: str, length: int, respect_word_boundaries: bool = True) -> str:
    """
    Shorten content to length characters plus "...".

    When respecting word boundaries, the cut moves back to the last space
    if that space lies beyond 70% of length.
    """
    if len(content) <= length:
        return content

    truncated = content[:length]
    if respect_word_boundaries:
        last_space = truncated.rfind(" ")
        if last_space != -1 and last_space > length * 0.7:
            truncated = truncated[:last_space]

    return truncated + "..."


def format_memory_link(record: SemanticMemoryRecord, keywords: List[str], link_format: str) -> str:
    """Working memory line that points back to a semantic record."""
    keywords_str = ", ".join(keywords)

    if link_format == "timestamped":
        stamp = datetime.fromtimestamp(record.created_at).strftime("%m-%d %H:%M")
        return f"[{stamp}] Vector: {keywords_str}"
    if link_format == "descriptive":
        short_content = truncate_content(record.content, LINK_PREVIEW_LENGTH)
        return (
            f"Vector memory about: {short_content} "
            f"(search: [vectormemory search]{keywords_str}[/vectormemory])"
        )
    return f"Vector: {keywords_str}"


def _display_date(timestamp: float) -> str:
    dt = datetime.fromtimestamp(timestamp)
    return f"{dt:%b} {dt.day}, {dt:%H:%M}"


def render_search_results(query: str, hits: List[SearchHit], display_length: int) -> str:
    """Human-readable listing of search hits, content cut to display_length."""
    if not hits:
        return f"No similar memories found for query: '{query}'. Try broader search terms."

    lines = [f"Found {len(hits)} similar memories for '{query}':", ""]
    for hit in hits:
        record = hit.record
        content = truncate_content(record.content, display_length)
        lines.append(
            f"• [ID:{record.id}, {round(hit.score * 100, 1)}% match, "
            f"{_display_date(record.created_at)}] {content}"
        )
    return "\n".join(lines)


def render_recent_memories(memories: List[SemanticMemoryRecord], display_length: int) -> str:
    """Human-readable listing of recent records, content cut to display_length."""
    if not memories:
        return "No memories stored yet."

    lines = [f"Recent {len(memories)} memories:", ""]
    for record in memories:
        content = truncate_content(record.content, display_length)
        lines.append(
            f"• [ID:{record.id}, {_display_date(record.created_at)}, "
            f"{record.vector_size} features] {content}"
        )
    return "\n".join(lines)


class VectorMemoryService:
    """
    CRUD, similarity search and limit enforcement for semantic memory.

    Usage:
        >>> service = VectorMemoryService(store, engine)
        >>> service.store_memory("42", "The user loves hiking in the Alps")
        >>> service.search_memories("42", "mountain hiking").get("results")
    """

    def __init__(self, store: SemanticMemoryStore, engine: TfIdfEngine, working_memory=None):
        """
        Initialize vector memory service.

        Args:
            store: Semantic memory repository
            engine: TF-IDF engine
            working_memory: WorkingMemoryService receiving link items when
                integrate_with_memory is enabled (optional)
        """
        self.store = store
        self.engine = engine
        self.working_memory = working_memory

    # -- writes ---------------------------------------------------------

    def store_memory(self, profile_id: ProfileId, content: str, config: VectorConfigLike = None) -> OperationResult:
        """
        Vectorize and persist content.

        Args:
            profile_id: Owning profile
            content: Text to remember (trimmed)
            config: Vector memory configuration or plain mapping

        Returns:
            OperationResult with memory, language and features_count
        """
        try:
            cfg = VectorMemoryConfig.from_mapping(config)
            content = content.strip()
            if not content:
                return OperationResult.fail("Error: Cannot store empty content.")

            self._cleanup_if_needed(profile_id, cfg)

            engine = self.engine.with_languages(cfg.language_overrides())
            language = self._determine_language(engine, content, cfg)
            vector = engine.vectorize(content)
            keywords = engine.extract_keywords(content, language)

            record = self.store.add(profile_id, content, vector, keywords, importance=1.0)

            logger.debug(
                "vector_memory_stored",
                profile_id=str(profile_id),
                memory_id=record.id,
                language=language,
                features=len(vector),
            )

            message = (
                "Content stored in vector memory successfully. "
                f"Generated {len(vector)} features (language: {language})."
            )
            if cfg.integrate_with_memory:
                link_message = self._add_memory_link(profile_id, record, cfg)
                if link_message:
                    message += f" {link_message}"

            return OperationResult.ok(message, memory=record, language=language, features_count=len(vector))

        except ValidationError as e:
            return self._invalid_config("store_memory", profile_id, e)
        except Exception as e:
            logger.error("store_memory_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error storing content: {e}")

    def delete_memory(self, profile_id: ProfileId, memory_id: int) -> OperationResult:
        try:
            if not self.store.delete(profile_id, memory_id):
                return OperationResult.fail("Memory not found.")
            return OperationResult.ok("Vector memory deleted successfully.")
        except Exception as e:
            logger.error("delete_memory_failed", profile_id=str(profile_id), memory_id=memory_id, error=str(e))
            return OperationResult.fail(f"Error deleting memory: {e}")

    def delete_best_match(self, profile_id: ProfileId, identifier: str) -> OperationResult:
        """
        Delete by numeric id, or else the single best match for the text
        (similarity threshold 0.3).
        """
        try:
            identifier = (identifier or "").strip()
            if not identifier:
                return OperationResult.fail("Error: Please provide memory ID or content to search for deletion.")

            if identifier.isdigit() and int(identifier) > 0:
                return self.delete_memory(profile_id, int(identifier))

            found = self.search_memories(
                profile_id,
                identifier,
                {"search_limit": 1, "similarity_threshold": DELETE_MATCH_THRESHOLD},
            )
            hits = found.get("results") or []
            if not found.success or not hits:
                return OperationResult.fail(
                    f"No memory found matching '{identifier}'. Try using exact ID or different search terms."
                )

            best = hits[0]
            deleted = self.delete_memory(profile_id, best.record.id)
            if not deleted.success:
                return deleted

            similarity = round(best.score * 100, 1)
            preview = truncate_content(best.record.content, DELETE_PREVIEW_LENGTH)
            return OperationResult.ok(
                f"Deleted memory (ID:{best.record.id}, {similarity}% match): {preview}",
                memory=best.record,
                similarity=best.score,
            )

        except Exception as e:
            logger.error("delete_best_match_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error deleting memory: {e}")

    def clear_memories(self, profile_id: ProfileId) -> OperationResult:
        """Delete every record of the profile and invalidate cached IDF values."""
        try:
            count = self.store.clear(profile_id)
            self.engine.clear_cache()
            return OperationResult.ok(f"Cleared {count} vector memories successfully.", deleted_count=count)
        except Exception as e:
            logger.error("clear_memories_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error clearing memories: {e}")

    def update_importance(self, profile_id: ProfileId, memory_id: int, importance: float) -> OperationResult:
        """Set importance, clamped to [0.1, 5.0]."""
        try:
            if self.store.get(profile_id, memory_id) is None:
                return OperationResult.fail("Memory not found.")

            self.store.update_importance(profile_id, memory_id, clamp_importance(importance))
            return OperationResult.ok(
                "Memory importance updated successfully.",
                memory=self.store.get(profile_id, memory_id),
            )
        except Exception as e:
            logger.error("update_importance_failed", profile_id=str(profile_id), memory_id=memory_id, error=str(e))
            return OperationResult.fail(f"Error updating memory importance: {e}")

    def boost(self, profile_id: ProfileId, memory_id: int, step: float = IMPORTANCE_STEP) -> OperationResult:
        record = self.store.get(profile_id, memory_id)
        if record is None:
            return OperationResult.fail("Memory not found.")
        return self.update_importance(profile_id, memory_id, record.importance + step)

    def diminish(self, profile_id: ProfileId, memory_id: int, step: float = IMPORTANCE_STEP) -> OperationResult:
        record = self.store.get(profile_id, memory_id)
        if record is None:
            return OperationResult.fail("Memory not found.")
        return self.update_importance(profile_id, memory_id, record.importance - step)

    # -- reads ----------------------------------------------------------

    def search_memories(self, profile_id: ProfileId, query: str, config: VectorConfigLike = None) -> OperationResult:
        """
        Rank the profile's records by similarity to query.

        Returns:
            OperationResult with results (list of SearchHit), a text listing
            cut to display_content_length and total_searched
        """
        try:
            cfg = VectorMemoryConfig.from_mapping(config)
            query = (query or "").strip()
            if not query:
                return OperationResult.fail("Error: Search query cannot be empty.")

            records = self.store.list(profile_id)
            if not records:
                return OperationResult.ok("No memories found. Store some content first.", results=[])

            engine = self.engine.with_languages(cfg.language_overrides())
            results = engine.find_similar(
                query,
                records,
                limit=cfg.search_limit,
                threshold=cfg.similarity_threshold,
                boost_recent=cfg.boost_recent,
            )

            return OperationResult.ok(
                f"Found {len(results)} similar memories.",
                results=results,
                text=render_search_results(query, results, cfg.display_content_length),
                total_searched=len(records),
            )

        except ValidationError as e:
            return self._invalid_config("search_memories", profile_id, e)
        except Exception as e:
            logger.error("search_memories_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error searching memories: {e}")

    def get_recent_memories(
        self, profile_id: ProfileId, limit: int = 5, config: VectorConfigLike = None
    ) -> OperationResult:
        """
        Newest records first; limit clamped to 1..20.

        Returns:
            OperationResult with memories and a text listing whose content
            is cut to display_content_length
        """
        try:
            cfg = VectorMemoryConfig.from_mapping(config)
            limit = max(1, min(limit, RECENT_LIMIT_MAX))
            memories = self.store.list(profile_id, limit)
            return OperationResult.ok(
                f"Retrieved {len(memories)} recent memories.",
                memories=memories,
                text=render_recent_memories(memories, cfg.display_content_length),
            )
        except ValidationError as e:
            return self._invalid_config("get_recent_memories", profile_id, e)
        except Exception as e:
            logger.error("get_recent_memories_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error retrieving recent memories: {e}")

    def get_memory(self, profile_id: ProfileId, memory_id: int) -> Optional[SemanticMemoryRecord]:
        return self.store.get(profile_id, memory_id)

    def get_memories(self, profile_id: ProfileId, limit: Optional[int] = None) -> List[SemanticMemoryRecord]:
        return self.store.list(profile_id, limit)

    def search_by_keywords(self, profile_id: ProfileId, keywords: List[str]) -> List[SemanticMemoryRecord]:
        """Records containing every keyword, newest first."""
        return self.store.search_by_keywords(profile_id, keywords)

    def get_stats(self, profile_id: ProfileId, config: VectorConfigLike = None) -> dict:
        """
        Usage statistics against max_entries.

        Returns:
            Dict with total_memories, max_entries, usage_percentage,
            average_vector_size, vocabulary_size, is_near_limit,
            is_over_limit, oldest_memory, newest_memory (or total_memories
            and error on failure)
        """
        try:
            cfg = VectorMemoryConfig.from_mapping(config)
            memories = self.store.list(profile_id)
            total = len(memories)
            max_entries = cfg.max_entries

            features = sum(record.vector_size for record in memories)
            vocabulary = set()
            for record in memories:
                vocabulary.update(record.vector)

            return {
                "total_memories": total,
                "max_entries": max_entries,
                "usage_percentage": round(total / max_entries * 100, 2) if max_entries > 0 else 0,
                "average_vector_size": round(features / total, 1) if total else 0,
                "vocabulary_size": len(vocabulary),
                "is_near_limit": total > max_entries * 0.8,
                "is_over_limit": total > max_entries,
                "oldest_memory": memories[-1].created_at if memories else None,
                "newest_memory": memories[0].created_at if memories else None,
            }

        except Exception as e:
            logger.error("get_vector_stats_failed", profile_id=str(profile_id), error=str(e))
            return {"total_memories": 0, "error": str(e)}

    def test_connection(self, profile_id: ProfileId) -> OperationResult:
        """Store, search and delete a throwaway record."""
        try:
            sample = f"Vector memory test - {int(self.engine.clock())}"
            vector = self.engine.vectorize(sample)
            if not vector:
                return OperationResult.fail("TF-IDF service is not working properly.")

            stored = self.store_memory(profile_id, sample)
            if not stored.success:
                return OperationResult.fail(f"Database storage test failed: {stored.message}")

            found = self.search_memories(profile_id, "test")
            if not found.success:
                return OperationResult.fail(f"Search test failed: {found.message}")

            self.delete_memory(profile_id, stored.get("memory").id)

            return OperationResult.ok("Vector memory service is working correctly.", features_generated=len(vector))

        except Exception as e:
            logger.error("vector_connection_test_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Connection test failed: {e}")

    # -- helpers --------------------------------------------------------

    def _cleanup_if_needed(self, profile_id: ProfileId, cfg: VectorMemoryConfig) -> None:
        if not cfg.auto_cleanup:
            return

        current = self.store.count(profile_id)
        if current >= cfg.max_entries:
            removed = self.store.delete_oldest(profile_id, current - cfg.max_entries + 1)
            logger.info(
                "vector_memory_cleanup",
                profile_id=str(profile_id),
                removed=removed,
                max_entries=cfg.max_entries,
            )

    @staticmethod
    def _determine_language(engine: TfIdfEngine, content: str, cfg: VectorMemoryConfig) -> str:
        if cfg.language_mode in ("ru", "en"):
            return cfg.language_mode
        if cfg.language_mode == "auto":
            return engine.detect_language(content)
        # multilingual: no language tables apply
        return "auto"

    def _add_memory_link(self, profile_id: ProfileId, record: SemanticMemoryRecord, cfg: VectorMemoryConfig) -> Optional[str]:
        if self.working_memory is None:
            logger.warning("working_memory_unavailable", profile_id=str(profile_id), memory_id=record.id)
            return None

        try:
            keywords = record.keywords[: cfg.max_link_keywords]
            link = format_memory_link(record, keywords, cfg.memory_link_format)
            self.working_memory.add_memory_item(profile_id, link)
            return "Added reference to regular memory."
        except Exception as e:
            logger.warning("memory_link_failed", profile_id=str(profile_id), memory_id=record.id, error=str(e))
            return None

    @staticmethod
    def _invalid_config(operation: str, profile_id: ProfileId, error: ValidationError) -> OperationResult:
        logger.warning("invalid_vector_config", operation=operation, profile_id=str(profile_id), error=str(error))
        return OperationResult.fail(f"Error: Invalid vector memory configuration: {error.errors()[0]['msg']}")
