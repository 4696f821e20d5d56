"""
Overflow policies for working memory.

Enforces the byte budget of a profile's formatted memory using one of
four strategies:
- truncate_old: commit, then evict oldest items until the memory fits
- truncate_new: cut the new content down to the remaining space
- reject: never auto-resolve
- compress: commit, collapse whitespace in every item, then evict oldest

A per-profile guard prevents an overflow pass from re-entering itself.
"""

import re
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional

import structlog

from agent_memory.config.settings import CleanupStrategy, OverflowConfig
from .schemas import OperationResult, ProfileId, WorkingMemoryItem, byte_len, truncate_bytes
from .store import WorkingMemoryStore

logger = structlog.get_logger(__name__)

MAX_CLEANUP_ITERATIONS = 100
TRUNCATE_NEW_SLACK = 10  # bytes reserved for the "\nN. " line prefix
REPLACE_PREFIX = "1. "

_WHITESPACE = re.compile(r"\s+")


class WriteOperation(str, Enum):
    """How new content enters working memory."""
    APPEND = "append"
    REPLACE = "replace"


def format_memory(items: Iterable[WorkingMemoryItem]) -> str:
    """Render items as 1-indexed "{n}. {content}" lines joined by newlines."""
    return "\n".join(f"{n}. {item.content}" for n, item in enumerate(items, start=1))


def _too_small(limit: int) -> OperationResult:
    return OperationResult.fail(
        f"Error: Memory limit ({limit} chars) is too small for the new content."
    )


class ProfileLocks:
    """
    Per-profile synchronisation.

    - writer(): re-entrant lock held across a fit-check-then-commit sequence
    - overflow_guard(): non-blocking guard held while an overflow pass runs

    Locks are created on first use and scoped by profile id, so unrelated
    profiles never serialise on each other.
    """

    def __init__(self):
        self._registry = threading.Lock()
        self._writers: Dict[str, threading.RLock] = {}
        self._guards: Dict[str, threading.Lock] = {}

    def writer(self, profile_id: ProfileId) -> threading.RLock:
        key = str(profile_id)
        with self._registry:
            if key not in self._writers:
                self._writers[key] = threading.RLock()
            return self._writers[key]

    def _guard(self, profile_id: ProfileId) -> threading.Lock:
        key = str(profile_id)
        with self._registry:
            if key not in self._guards:
                self._guards[key] = threading.Lock()
            return self._guards[key]

    @contextmanager
    def overflow_guard(self, profile_id: ProfileId) -> Iterator[bool]:
        """
        Try to take the overflow guard without blocking.

        Yields:
            True if acquired (released on exit), False if already held
        """
        guard = self._guard(profile_id)
        acquired = guard.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                guard.release()

    def is_processing_overflow(self, profile_id: ProfileId) -> bool:
        """Whether an overflow pass currently holds the profile's guard."""
        return self._guard(profile_id).locked()


class OverflowResolver:
    """
    Resolves a write that does not fit the memory budget.

    Usage:
        >>> resolver = OverflowResolver(store, locks)
        >>> result = resolver.resolve("42", "new line", WriteOperation.APPEND, cfg)
    """

    def __init__(self, store: WorkingMemoryStore, locks: ProfileLocks):
        """
        Initialize overflow resolver.

        Args:
            store: Working memory repository
            locks: Shared per-profile locks
        """
        self.store = store
        self.locks = locks

    def resolve(
        self,
        profile_id: ProfileId,
        content: str,
        operation: WriteOperation,
        config: OverflowConfig,
    ) -> OperationResult:
        """
        Apply the configured cleanup strategy to an over-budget write.

        Args:
            profile_id: Owning profile
            content: New content (already trimmed)
            operation: Append or replace
            config: Overflow configuration

        Returns:
            OperationResult describing the outcome
        """
        limit = config.memory_limit

        if not config.auto_cleanup:
            return OperationResult.fail(
                f"Error: Memory limit ({limit} chars) exceeded. Auto cleanup is disabled."
            )

        with self.locks.overflow_guard(profile_id) as acquired:
            if not acquired:
                logger.warning("overflow_already_in_progress", profile_id=str(profile_id))
                return OperationResult.fail("Error: Memory overflow processing already in progress.")

            strategy = config.cleanup_strategy
            try:
                if strategy == CleanupStrategy.REJECT:
                    return OperationResult.fail(
                        f"Error: Memory limit ({limit} chars) exceeded. New content rejected."
                    )
                if strategy == CleanupStrategy.TRUNCATE_NEW:
                    return self._truncate_new(profile_id, content, operation, limit)
                if strategy == CleanupStrategy.COMPRESS:
                    return self._compress(profile_id, content, operation, limit)
                return self._truncate_old(profile_id, content, operation, limit)

            except Exception as e:
                logger.error(
                    "overflow_handling_failed",
                    profile_id=str(profile_id),
                    strategy=strategy.value,
                    error=str(e),
                )
                return OperationResult.fail(f"Error handling memory overflow: {e}")

    def _replace_with(self, profile_id: ProfileId, content: str) -> WorkingMemoryItem:
        self.store.delete_all(profile_id)
        return self.store.create(profile_id, content, 1)

    def _replace_truncated(self, profile_id: ProfileId, content: str, limit: int) -> Optional[WorkingMemoryItem]:
        """Replace memory with content cut to fit as item 1; None if nothing fits."""
        truncated = truncate_bytes(content, limit - byte_len(REPLACE_PREFIX))
        if not truncated.strip():
            return None
        return self._replace_with(profile_id, truncated)

    def _truncate_old(
        self, profile_id: ProfileId, content: str, operation: WriteOperation, limit: int
    ) -> OperationResult:
        with self.store.db.transaction():
            if operation == WriteOperation.APPEND:
                self.store.append(profile_id, content)
                self._evict_oldest(profile_id, limit, CleanupStrategy.TRUNCATE_OLD)
            elif self._replace_truncated(profile_id, content, limit) is None:
                return _too_small(limit)

        return OperationResult.ok(
            "Memory updated with overflow handling (truncate_old). "
            "Content may have been modified to fit limit."
        )

    def _truncate_new(
        self, profile_id: ProfileId, content: str, operation: WriteOperation, limit: int
    ) -> OperationResult:
        with self.store.db.transaction():
            if operation == WriteOperation.REPLACE:
                if self._replace_truncated(profile_id, content, limit) is None:
                    return _too_small(limit)
                return OperationResult.ok(
                    "Memory updated with overflow handling (truncate_new). "
                    "Content may have been modified to fit limit."
                )

            current_length = byte_len(format_memory(self.store.list_items(profile_id)))
            available = limit - current_length - TRUNCATE_NEW_SLACK
            truncated = truncate_bytes(content, available)

            # a multibyte first character can leave nothing after truncation
            if not truncated.strip():
                return OperationResult.fail("No space available for new content.")

            item = self.store.append(profile_id, truncated)

        return OperationResult.ok(
            f"Memory item #{item.position} added successfully (content truncated).",
            item=item,
        )

    def _compress(
        self, profile_id: ProfileId, content: str, operation: WriteOperation, limit: int
    ) -> OperationResult:
        with self.store.db.transaction():
            if operation == WriteOperation.APPEND:
                self.store.append(profile_id, content)
            else:
                self._replace_with(profile_id, content)

            for item in self.store.list_items(profile_id):
                compressed = _WHITESPACE.sub(" ", item.content.strip())
                if compressed != item.content:
                    self.store.update_content(item.id, compressed)

            self._evict_oldest(profile_id, limit, CleanupStrategy.COMPRESS)

        return OperationResult.ok(
            "Memory updated with overflow handling (compress). "
            "Content may have been modified to fit limit."
        )

    def _evict_oldest(self, profile_id: ProfileId, limit: int, strategy: CleanupStrategy) -> int:
        """
        Delete the oldest item until the formatted memory fits the limit.

        Returns:
            Number of items evicted
        """
        iterations = 0
        over_limit = True

        while iterations < MAX_CLEANUP_ITERATIONS:
            if byte_len(format_memory(self.store.list_items(profile_id))) <= limit:
                over_limit = False
                break

            oldest = self.store.oldest(profile_id)
            if oldest is None:
                over_limit = False
                break

            self.store.delete(oldest.id)
            self.store.reorder(profile_id)
            iterations += 1

        if over_limit:
            over_limit = byte_len(format_memory(self.store.list_items(profile_id))) > limit

        if over_limit:
            logger.warning(
                "overflow_cleanup_iteration_cap",
                profile_id=str(profile_id),
                strategy=strategy.value,
                iterations=iterations,
                limit=limit,
            )

        return iterations
