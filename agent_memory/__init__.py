"""
Agent memory: bounded working memory and TF-IDF semantic memory.
"""

__version__ = "0.1.0"

from .integrate import MemorySubsystem, create_memory_subsystem

__all__ = ["MemorySubsystem", "create_memory_subsystem", "__version__"]
