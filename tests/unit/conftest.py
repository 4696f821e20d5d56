"""
Shared fixtures for memory subsystem unit tests.
"""
import pytest

from agent_memory.memory import ProfileLocks, WorkingMemoryService, WorkingMemoryStore
from agent_memory.persist.sqlite_store import MemoryDatabase
from agent_memory.vector import (
    IdfCache,
    LanguageRegistry,
    SemanticMemoryStore,
    TfIdfEngine,
    VectorMemoryService,
)

PROFILE = "42"


class FrozenClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def profile_id():
    return PROFILE


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def db(tmp_path):
    """Create a temporary memory database."""
    database = MemoryDatabase(tmp_path / "memory.db")
    yield database
    database.close()


@pytest.fixture
def working_store(db):
    return WorkingMemoryStore(db)


@pytest.fixture
def locks():
    return ProfileLocks()


@pytest.fixture
def working_service(working_store, locks):
    return WorkingMemoryService(working_store, locks)


@pytest.fixture
def registry():
    return LanguageRegistry.builtin()


@pytest.fixture
def vector_store(db, clock):
    return SemanticMemoryStore(db, clock=clock)


@pytest.fixture
def idf_cache(db, vector_store, clock):
    return IdfCache(db, vector_store, ttl_seconds=3600, clock=clock)


@pytest.fixture
def engine(registry, idf_cache, vector_store, clock):
    return TfIdfEngine(registry, idf_cache, vector_store, clock=clock)


@pytest.fixture
def vector_service(vector_store, engine, working_service):
    return VectorMemoryService(vector_store, engine, working_memory=working_service)
