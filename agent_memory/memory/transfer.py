"""
Plain-text import and export of working memory.
"""

import re
from datetime import datetime
from typing import Optional

import structlog

from .schemas import OperationResult, ProfileId
from .service import ConfigLike, WorkingMemoryService

logger = structlog.get_logger(__name__)


def safe_filename_part(name: str) -> str:
    """Replace anything outside [a-zA-Z0-9_-] with underscores."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", name)


class TextMemoryTransfer:
    """Exports formatted working memory and imports text as a memory item."""

    def __init__(self, service: WorkingMemoryService):
        self.service = service

    def generate_filename(self, profile_id: ProfileId, profile_name: str, now: Optional[datetime] = None) -> str:
        timestamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
        return f"memory_profile_{profile_id}_{safe_filename_part(profile_name)}_{timestamp}.txt"

    def export_text(self, profile_id: ProfileId, profile_name: str = "profile") -> dict:
        """
        Export the formatted memory.

        Returns:
            Dict with filename and content
        """
        return {
            "filename": self.generate_filename(profile_id, profile_name),
            "content": self.service.get_formatted_memory(profile_id),
        }

    def import_text(
        self,
        profile_id: ProfileId,
        content: Optional[str],
        replace_existing: bool = False,
        config: ConfigLike = None,
    ) -> OperationResult:
        """
        Import text as one memory item, optionally clearing memory first.
        """
        try:
            if not (content or "").strip():
                return OperationResult.fail("Content is empty or contains no valid data.")

            if replace_existing:
                cleared = self.service.clear_memory(profile_id, config)
                if not cleared.success:
                    return OperationResult.fail(f"Failed to clear existing memory: {cleared.message}")

            result = self.service.add_memory_item(profile_id, content, config)
            if result.success:
                action = "replaced" if replace_existing else "imported"
                return OperationResult.ok(f"Memory {action} successfully.")
            return result

        except Exception as e:
            logger.error("import_text_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Error importing content: {e}")
