"""
JSON export and JSON/plain-text import of semantic memory.
"""

import json
from datetime import datetime, timezone
from typing import Optional

import structlog

from agent_memory.memory.schemas import OperationResult, ProfileId
from agent_memory.memory.transfer import safe_filename_part
from .service import VectorConfigLike, VectorMemoryService

logger = structlog.get_logger(__name__)


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class VectorMemoryTransfer:
    """
    Moves semantic memories in and out of a profile.

    Imports go through VectorMemoryService.store_memory, so vectors are
    recomputed against the current corpus rather than trusted from the file.
    """

    def __init__(self, service: VectorMemoryService):
        self.service = service

    def generate_filename(self, profile_id: ProfileId, profile_name: str, now: Optional[datetime] = None) -> str:
        timestamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
        return f"vector_memory_profile_{profile_id}_{safe_filename_part(profile_name)}_{timestamp}.json"

    def export_json(self, profile_id: ProfileId, profile_name: str = "profile") -> OperationResult:
        """
        Export every record of the profile as a JSON document.

        Returns:
            OperationResult with content (JSON text) and filename
        """
        try:
            memories = self.service.get_memories(profile_id)
            if not memories:
                return OperationResult.fail("No vector memories to export.")

            export_data = {
                "profile": {"id": str(profile_id), "name": profile_name},
                "export_date": datetime.now(timezone.utc).isoformat(),
                "total_memories": len(memories),
                "memories": [
                    {
                        "id": record.id,
                        "content": record.content,
                        "keywords": record.keywords,
                        "importance": record.importance,
                        "vector_size": record.vector_size,
                        "created_at": _iso(record.created_at),
                    }
                    for record in memories
                ],
            }

            return OperationResult.ok(
                f"Exported {len(memories)} vector memories.",
                content=json.dumps(export_data, indent=4, ensure_ascii=False),
                filename=self.generate_filename(profile_id, profile_name),
            )

        except Exception as e:
            logger.error("export_json_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Export failed: {e}")

    def import_content(
        self,
        profile_id: ProfileId,
        content: Optional[str],
        is_json: bool,
        replace_existing: bool = False,
        config: VectorConfigLike = None,
    ) -> OperationResult:
        """
        Import memories from JSON ({"memories": [{"content": ...}]}) or from
        text with one memory per non-empty line.

        Returns:
            OperationResult with success_count and error_count
        """
        if replace_existing:
            cleared = self.service.clear_memories(profile_id)
            if not cleared.success:
                return OperationResult.fail(f"Failed to clear existing memories: {cleared.message}")

        try:
            if not (content or "").strip():
                return OperationResult.fail("Content is empty or contains no valid data.")

            if is_json:
                try:
                    data = json.loads(content)
                except json.JSONDecodeError:
                    return OperationResult.fail("Invalid JSON format.")

                if not isinstance(data, dict) or not isinstance(data.get("memories"), list):
                    return OperationResult.fail("Invalid JSON structure. Expected memories array.")

                entries = [
                    entry["content"]
                    for entry in data["memories"]
                    if isinstance(entry, dict) and isinstance(entry.get("content"), str)
                ]
            else:
                entries = [line.strip() for line in content.split("\n") if line.strip()]

            success_count = 0
            error_count = 0
            for entry in entries:
                if self.service.store_memory(profile_id, entry, config).success:
                    success_count += 1
                else:
                    error_count += 1

            # bulk change invalidates every cached IDF
            self.service.engine.clear_cache()

            logger.info(
                "vector_memory_imported",
                profile_id=str(profile_id),
                success_count=success_count,
                error_count=error_count,
            )
            return OperationResult.ok(
                f"Imported {success_count} memories ({error_count} failed).",
                success_count=success_count,
                error_count=error_count,
            )

        except Exception as e:
            logger.error("import_content_failed", profile_id=str(profile_id), error=str(e))
            return OperationResult.fail(f"Import failed: {e}")
