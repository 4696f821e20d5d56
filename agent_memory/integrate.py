"""
Wiring for the memory subsystem.

Builds the database, language registry, IDF cache, engine, stores and
services and hands them back as one MemorySubsystem.
"""

import time
from pathlib import Path
from typing import Callable, Optional, Union

import structlog

from agent_memory.config.settings import Settings
from agent_memory.memory import (
    ProfileLocks,
    TextMemoryTransfer,
    WorkingMemoryService,
    WorkingMemoryStore,
)
from agent_memory.memory.schemas import ProfileId
from agent_memory.persist.sqlite_store import MemoryDatabase
from agent_memory.telemetry import configure_logging
from agent_memory.vector import (
    IdfCache,
    LanguageRegistry,
    SemanticMemoryStore,
    TfIdfEngine,
    VectorMemoryService,
    VectorMemoryTransfer,
)

logger = structlog.get_logger(__name__)


class MemorySubsystem:
    """
    Working and semantic memory sharing one database.

    Provides:
    - working_memory / working_transfer for the bounded item list
    - vector_memory / vector_transfer for semantic records
    - profile-level cascade deletion
    """

    def __init__(
        self,
        db: MemoryDatabase,
        registry: LanguageRegistry,
        working_memory: WorkingMemoryService,
        vector_memory: VectorMemoryService,
    ):
        self.db = db
        self.registry = registry
        self.working_memory = working_memory
        self.vector_memory = vector_memory
        self.working_transfer = TextMemoryTransfer(working_memory)
        self.vector_transfer = VectorMemoryTransfer(vector_memory)

    @property
    def engine(self) -> TfIdfEngine:
        return self.vector_memory.engine

    def delete_profile(self, profile_id: ProfileId) -> int:
        """
        Remove every memory entity owned by a profile.

        Returns:
            Number of rows deleted
        """
        deleted = self.db.delete_profile(profile_id)
        if deleted:
            self.engine.clear_cache()
        logger.info("profile_memory_deleted", profile_id=str(profile_id), deleted=deleted)
        return deleted

    def close(self) -> None:
        self.db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_memory_subsystem(
    settings: Optional[Settings] = None,
    db_path: Optional[Union[str, Path]] = None,
    clock: Callable[[], float] = time.time,
) -> MemorySubsystem:
    """
    Factory function to create the memory subsystem.

    Args:
        settings: Application settings (defaults if omitted)
        db_path: Overrides settings.paths.db_path (":memory:" allowed)
        clock: Time source shared by the IDF cache, ranker and vector store

    Returns:
        MemorySubsystem instance
    """
    settings = settings or Settings()
    configure_logging(settings.log_level, settings.log_json)

    db = MemoryDatabase(db_path if db_path is not None else settings.paths.db_path)

    registry = LanguageRegistry.load(settings.paths.languages_dir)

    locks = ProfileLocks()
    working_memory = WorkingMemoryService(WorkingMemoryStore(db), locks)

    vector_store = SemanticMemoryStore(db, clock=clock)
    idf_cache = IdfCache(db, vector_store, ttl_seconds=settings.idf_ttl_seconds, clock=clock)
    engine = TfIdfEngine(registry, idf_cache, vector_store, clock=clock)
    vector_memory = VectorMemoryService(vector_store, engine, working_memory=working_memory)

    logger.info(
        "memory_subsystem_ready",
        db_path=str(db_path if db_path is not None else settings.paths.db_path),
        languages=registry.codes(),
        language_source=registry.source,
    )

    return MemorySubsystem(db, registry, working_memory, vector_memory)
