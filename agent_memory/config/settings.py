"""Application settings and per-call configuration schemas."""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = structlog.get_logger(__name__)

PACKAGED_LANGUAGES_DIR = Path(__file__).resolve().parent.parent / "data" / "languages"


class CleanupStrategy(str, Enum):
    """Policy for resolving a working-memory overflow."""
    TRUNCATE_OLD = "truncate_old"
    TRUNCATE_NEW = "truncate_new"
    REJECT = "reject"
    COMPRESS = "compress"


class OverflowConfig(BaseModel):
    """Working memory limits, passed per call."""

    model_config = ConfigDict(extra="ignore")

    memory_limit: int = Field(2000, gt=0, description="Budget in bytes for the formatted memory")
    auto_cleanup: bool = True
    cleanup_strategy: CleanupStrategy = CleanupStrategy.TRUNCATE_OLD
    enable_versioning: bool = False  # accepted, versioning itself is a no-op
    max_versions: int = Field(3, ge=1)
    skip_limit_check: bool = False
    languages: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("cleanup_strategy", mode="before")
    @classmethod
    def _fallback_strategy(cls, value: Any) -> Any:
        if isinstance(value, CleanupStrategy):
            return value
        try:
            return CleanupStrategy(value)
        except ValueError:
            logger.warning("unknown_cleanup_strategy", strategy=value, fallback="truncate_old")
            return CleanupStrategy.TRUNCATE_OLD

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]] = None) -> "OverflowConfig":
        """Build from a plain key-value map (or pass an instance through)."""
        if isinstance(config, cls):
            return config
        return cls(**dict(config or {}))


class VectorMemoryConfig(BaseModel):
    """Semantic memory behaviour, passed per call."""

    model_config = ConfigDict(extra="ignore")

    max_entries: int = Field(1000, ge=1)
    auto_cleanup: bool = True
    similarity_threshold: float = Field(0.1, ge=0.0, le=1.0)
    search_limit: int = Field(5, ge=1, le=20)
    boost_recent: bool = True
    language_mode: Literal["auto", "ru", "en", "multilingual"] = "auto"
    custom_stop_words_en: str = ""
    custom_stop_words_ru: str = ""
    languages: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    integrate_with_memory: bool = False
    memory_link_format: Literal["short", "descriptive", "timestamped"] = "descriptive"
    max_link_keywords: int = Field(4, ge=2, le=10)
    display_content_length: int = Field(500, ge=100, le=1000)

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]] = None) -> "VectorMemoryConfig":
        """Build from a plain key-value map (or pass an instance through)."""
        if isinstance(config, cls):
            return config
        return cls(**dict(config or {}))

    def language_overrides(self) -> Dict[str, Dict[str, Any]]:
        """
        Merge the comma-separated custom stop word fields into a
        language override map suitable for LanguageRegistry.merged().
        """
        overrides: Dict[str, Dict[str, Any]] = {
            code: dict(cfg) for code, cfg in self.languages.items()
        }

        for code, raw in (("ru", self.custom_stop_words_ru), ("en", self.custom_stop_words_en)):
            words = [w.strip() for w in raw.split(",") if w.strip()]
            if words:
                entry = overrides.setdefault(code, {})
                entry["stop_words"] = list(entry.get("stop_words", [])) + words

        return overrides


class Paths(BaseModel):
    """File and directory paths configuration."""
    db_path: str = "data/memory/memory.db"
    languages_dir: str = str(PACKAGED_LANGUAGES_DIR)


class Settings(BaseModel):
    """Main application settings."""
    paths: Paths = Paths()
    idf_ttl_seconds: int = Field(3600, gt=0)
    log_level: str = "INFO"
    log_json: bool = True
