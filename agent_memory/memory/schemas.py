"""
Working memory data models.

Defines the WorkingMemoryItem structure, the uniform OperationResult
returned by service boundaries, and byte-length helpers.
"""

import time
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


ProfileId = Union[int, str]


def byte_len(text: str) -> int:
    """Length of text in UTF-8 bytes (the unit of every memory budget)."""
    return len(text.encode("utf-8"))


def truncate_bytes(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes UTF-8 bytes without splitting a character."""
    if max_bytes <= 0:
        return ""
    return text.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")


class WorkingMemoryItem(BaseModel):
    """
    A single line of a profile's working memory.

    Positions within a profile form the contiguous sequence 1..N.
    """

    id: Optional[int] = Field(None, description="Storage row id")
    profile_id: str = Field(..., description="Owning profile identifier")
    content: str = Field(..., description="Memory text")
    position: int = Field(1, ge=1, description="1-based order within the profile")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: float = Field(default_factory=time.time, description="Unix timestamp")
    updated_at: float = Field(default_factory=time.time, description="Unix timestamp")

    @property
    def content_length(self) -> int:
        """Content length in bytes."""
        return byte_len(self.content)


class OperationResult(BaseModel):
    """
    Outcome of a service operation.

    Extra keyword fields (item, results, deleted_count, ...) are kept as
    attributes so callers can read operation-specific data.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    success: bool
    message: str

    @classmethod
    def ok(cls, message: str, **extra: Any) -> "OperationResult":
        return cls(success=True, message=message, **extra)

    @classmethod
    def fail(cls, message: str, **extra: Any) -> "OperationResult":
        return cls(success=False, message=message, **extra)

    def get(self, key: str, default: Any = None) -> Any:
        """Read an extra field by name."""
        return (self.model_extra or {}).get(key, default)
