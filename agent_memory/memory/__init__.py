"""
Working memory subsystem.

Provides:
- Bounded, ordered memory items per profile
- Overflow strategies (truncate_old, truncate_new, reject, compress)
- Per-profile reentrancy guard for overflow resolution
- Plain-text import/export
"""

from .schemas import OperationResult, WorkingMemoryItem, byte_len, truncate_bytes
from .store import WorkingMemoryStore
from .policy import (
    MAX_CLEANUP_ITERATIONS,
    OverflowResolver,
    ProfileLocks,
    WriteOperation,
    format_memory,
)
from .service import WorkingMemoryService
from .transfer import TextMemoryTransfer

__all__ = [
    "OperationResult",
    "WorkingMemoryItem",
    "byte_len",
    "truncate_bytes",
    "WorkingMemoryStore",
    "MAX_CLEANUP_ITERATIONS",
    "OverflowResolver",
    "ProfileLocks",
    "WriteOperation",
    "format_memory",
    "WorkingMemoryService",
    "TextMemoryTransfer",
]
