"""
Working memory service.

Bounded, ordered list of short text items per profile. Every mutating
operation returns an OperationResult and never raises: validation and
capacity problems come back as success=False with a descriptive message,
unexpected storage failures are logged and reported the same way.
"""

from typing import Any, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from agent_memory.config.settings import OverflowConfig
from .policy import OverflowResolver, ProfileLocks, WriteOperation, format_memory
from .schemas import OperationResult, ProfileId, WorkingMemoryItem, byte_len
from .store import WorkingMemoryStore

logger = structlog.get_logger(__name__)

ConfigLike = Union[OverflowConfig, Mapping[str, Any], None]


class WorkingMemoryService:
    """
    CRUD and limit enforcement for working memory.

    Usage:
        >>> service = WorkingMemoryService(WorkingMemoryStore(db))
        >>> service.add_memory_item("42", "User prefers short answers")
        >>> service.get_formatted_memory("42")
        '1. User prefers short answers'
    """

    def __init__(
        self,
        store: WorkingMemoryStore,
        locks: Optional[ProfileLocks] = None,
        resolver: Optional[OverflowResolver] = None,
    ):
        """
        Initialize working memory service.

        Args:
            store: Working memory repository
            locks: Per-profile locks (shared with the resolver)
            resolver: Overflow resolver (built from store and locks if omitted)
        """
        self.store = store
        self.locks = locks or ProfileLocks()
        self.resolver = resolver or OverflowResolver(store, self.locks)

    # -- reads ----------------------------------------------------------

    def get_memory_items(self, profile_id: ProfileId) -> List[WorkingMemoryItem]:
        """Items ordered by position."""
        return self.store.list_items(profile_id)

    def get_formatted_memory(self, profile_id: ProfileId) -> str:
        """Memory as "{n}. {content}" lines joined by newlines ("" when empty)."""
        return format_memory(self.get_memory_items(profile_id))

    def get_memory_for_context(self, profile_id: ProfileId, max_length: Optional[int] = None) -> str:
        """
        Formatted memory trimmed to whole lines within max_length bytes.

        Args:
            profile_id: Owning profile
            max_length: Byte budget (None or 0 means unlimited)

        Returns:
            Formatted memory, possibly missing trailing items
        """
        formatted = self.get_formatted_memory(profile_id)

        if not max_length or byte_len(formatted) <= max_length:
            return formatted

        lines = []
        current_length = 0
        for number, item in enumerate(self.get_memory_items(profile_id), start=1):
            line = f"{number}. {item.content}\n"
            if current_length + byte_len(line) > max_length:
                break
            lines.append(line)
            current_length += byte_len(line)

        return "".join(lines).rstrip()

    def search_memory(self, profile_id: ProfileId, query: str) -> List[WorkingMemoryItem]:
        """Items containing query as a case-sensitive substring."""
        return self.store.search(profile_id, query)

    def get_memory_stats(self, profile_id: ProfileId, config: ConfigLike = None) -> dict:
        """
        Usage statistics against the configured limit.

        Returns:
            Dict with total_items, total_length, limit, usage_percentage,
            is_near_limit, is_over_limit (default limit if config is invalid)
        """
        try:
            cfg = OverflowConfig.from_mapping(config)
        except ValidationError as e:
            logger.warning(
                "invalid_memory_config", operation="get_memory_stats", profile_id=str(profile_id), error=str(e)
            )
            cfg = OverflowConfig()

        items = self.get_memory_items(profile_id)
        total_length = sum(item.content_length for item in items)
        limit = cfg.memory_limit

        return {
            "total_items": len(items),
            "total_length": total_length,
            "limit": limit,
            "usage_percentage": round(total_length / limit * 100, 2) if limit > 0 else 0,
            "is_near_limit": total_length > limit * 0.8,
            "is_over_limit": total_length > limit,
        }

    # -- writes ---------------------------------------------------------

    def add_memory_item(self, profile_id: ProfileId, content: str, config: ConfigLike = None) -> OperationResult:
        """
        Append an item, resolving overflow when the memory would exceed its limit.

        Args:
            profile_id: Owning profile
            content: Item text (trimmed)
            config: Overflow configuration or plain mapping

        Returns:
            OperationResult (item attached on direct success)
        """
        try:
            cfg = OverflowConfig.from_mapping(config)
            content = content.strip()
            if not content:
                return OperationResult.fail("Error: Memory content cannot be empty.")

            with self.locks.writer(profile_id):
                items = self.get_memory_items(profile_id)
                new_position = len(items) + 1

                if not cfg.skip_limit_check and not self._fits_after_append(items, content, cfg):
                    return self.resolver.resolve(profile_id, content, WriteOperation.APPEND, cfg)

                item = self.store.create(profile_id, content, new_position)

            return OperationResult.ok(f"Memory item #{new_position} added successfully.", item=item)

        except ValidationError as e:
            return self._invalid_config("add_memory_item", profile_id, e)
        except Exception as e:
            logger.error("add_memory_item_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error adding to memory: {e}")

    def replace_memory(self, profile_id: ProfileId, content: str, config: ConfigLike = None) -> OperationResult:
        """
        Discard all items and store content as the single item.

        Empty content simply clears the memory.
        """
        try:
            cfg = OverflowConfig.from_mapping(config)
            content = content.strip()

            with self.locks.writer(profile_id):
                if not cfg.skip_limit_check and byte_len(format_memory(self._as_items(profile_id, content))) > cfg.memory_limit:
                    return self.resolver.resolve(profile_id, content, WriteOperation.REPLACE, cfg)

                if cfg.enable_versioning:
                    self.save_version(profile_id, cfg)

                with self.store.db.transaction():
                    self.store.delete_all(profile_id)
                    if content:
                        self.store.create(profile_id, content, 1)

            return OperationResult.ok("Memory replaced successfully. New content stored.")

        except ValidationError as e:
            return self._invalid_config("replace_memory", profile_id, e)
        except Exception as e:
            logger.error("replace_memory_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error replacing memory: {e}")

    def delete_memory_item(self, profile_id: ProfileId, item_number: int, config: ConfigLike = None) -> OperationResult:
        """
        Delete the item shown as number item_number (1-indexed) and renumber.
        """
        try:
            cfg = OverflowConfig.from_mapping(config)
            if item_number < 1:
                return OperationResult.fail("Error: Invalid item number. Must be a positive integer.")

            with self.locks.writer(profile_id):
                items = self.get_memory_items(profile_id)

                if item_number > len(items):
                    return OperationResult.fail(
                        f"Error: Item #{item_number} does not exist. Memory has {len(items)} items."
                    )

                if cfg.enable_versioning:
                    self.save_version(profile_id, cfg)

                with self.store.db.transaction():
                    self.store.delete(items[item_number - 1].id)
                    self.store.reorder(profile_id)

            if len(items) == 1:
                return OperationResult.ok(f"Memory item #{item_number} deleted. Memory is now empty.")
            return OperationResult.ok(f"Memory item #{item_number} deleted successfully.")

        except ValidationError as e:
            return self._invalid_config("delete_memory_item", profile_id, e)
        except Exception as e:
            logger.error("delete_memory_item_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error deleting memory item: {e}")

    def clear_memory(self, profile_id: ProfileId, config: ConfigLike = None) -> OperationResult:
        """Delete every item of the profile."""
        try:
            cfg = OverflowConfig.from_mapping(config)

            with self.locks.writer(profile_id):
                if cfg.enable_versioning:
                    self.save_version(profile_id, cfg)
                deleted = self.store.delete_all(profile_id)

            return OperationResult.ok("Memory cleared successfully.", deleted_count=deleted)

        except ValidationError as e:
            return self._invalid_config("clear_memory", profile_id, e)
        except Exception as e:
            logger.error("clear_memory_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error clearing memory: {e}")

    def save_version(self, profile_id: ProfileId, config: OverflowConfig) -> None:
        """Versioning hook; snapshots are not stored yet."""
        logger.debug(
            "memory_versioning_skipped",
            profile_id=str(profile_id),
            max_versions=config.max_versions,
        )

    # -- helpers --------------------------------------------------------

    def _fits_after_append(self, items: List[WorkingMemoryItem], content: str, cfg: OverflowConfig) -> bool:
        current = format_memory(items)
        new_line = f"{len(items) + 1}. {content}"
        total = new_line if not current else f"{current}\n{new_line}"
        return byte_len(total) <= cfg.memory_limit

    @staticmethod
    def _as_items(profile_id: ProfileId, content: str) -> List[WorkingMemoryItem]:
        if not content:
            return []
        return [WorkingMemoryItem(profile_id=str(profile_id), content=content, position=1)]

    @staticmethod
    def _invalid_config(operation: str, profile_id: ProfileId, error: ValidationError) -> OperationResult:
        logger.warning("invalid_memory_config", operation=operation, profile_id=str(profile_id), error=str(error))
        return OperationResult.fail(f"Error: Invalid memory configuration: {error.errors()[0]['msg']}")
