"""
Persistence layer for the memory subsystem.

Provides:
- SQLite database shared by working memory, semantic memory and the IDF cache
- Profile-level cascade deletion
"""

from .sqlite_store import MemoryDatabase, StorageError, TABLES

__all__ = [
    "MemoryDatabase",
    "StorageError",
    "TABLES",
]
