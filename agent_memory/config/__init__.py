from .settings import CleanupStrategy, OverflowConfig, Paths, Settings, VectorMemoryConfig

__all__ = [
    "CleanupStrategy",
    "OverflowConfig",
    "Paths",
    "Settings",
    "VectorMemoryConfig",
]
