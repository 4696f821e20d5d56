"""
Language resources for tokenization.

Each language provides stop words, an ordered list of suffixes for
stemming, and optional detection patterns. Resources are JSON documents
keyed by language code:

    {"name": "English", "code": "en", "stop_words": [...], "endings": [...],
     "detection_patterns": {"charset": "cyrillic", "threshold": 0.3,
                            "sample_words": [...]}}

A LanguageRegistry is immutable: merging overrides returns a new registry
with a bumped version.
"""

import json
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = structlog.get_logger(__name__)


class LanguageResourceError(Exception):
    """A language resource document could not be read or parsed."""


class DetectionPatterns(BaseModel):
    """Rules that select a language during detection."""

    model_config = ConfigDict(frozen=True, extra="allow")

    charset: Optional[str] = None
    threshold: float = 0.3
    sample_words: Tuple[str, ...] = ()


class LanguageProfile(BaseModel):
    """Stop words and stemming suffixes for one language."""

    model_config = ConfigDict(frozen=True, extra="allow")

    code: str
    name: str = ""
    stop_words: Tuple[str, ...] = ()
    endings: Tuple[str, ...] = ()
    detection_patterns: Optional[DetectionPatterns] = None

    @property
    def display_name(self) -> str:
        return self.name or self.code.capitalize()

    def stop_word_set(self) -> FrozenSet[str]:
        return frozenset(self.stop_words)


BUILTIN_LANGUAGES: Dict[str, Dict[str, Any]] = {
    "ru": {
        "name": "Russian",
        "code": "ru",
        "stop_words": ["и", "в", "на", "что", "как", "это", "для", "с", "по", "от", "до", "из",
                       "он", "она", "они", "мы", "вы", "я", "ты", "то", "так", "но", "или", "за", "под"],
        "endings": ["ение", "ость", "ова", "ева", "ать", "ить", "еть", "ов", "ев", "ий", "ая", "ое", "ые"],
    },
    "en": {
        "name": "English",
        "code": "en",
        "stop_words": ["the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
                       "by", "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does", "did"],
        "endings": ["tion", "ing", "ment", "ness", "ful", "ous", "ive", "ed", "ly", "s", "er", "est"],
    },
}


def _build_profile(code: str, data: Mapping[str, Any]) -> LanguageProfile:
    payload = dict(data)
    payload["code"] = code
    return LanguageProfile(**payload)


def read_language_file(path: Path) -> LanguageProfile:
    """
    Parse one language resource document.

    Raises:
        LanguageResourceError: if the file is unreadable, not JSON, or lacks
        stop_words/endings
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise LanguageResourceError(f"{path.name}: {e}") from e

    if not isinstance(data, dict) or "stop_words" not in data or "endings" not in data:
        raise LanguageResourceError(f"{path.name}: expected stop_words and endings")

    try:
        return _build_profile(path.stem, data)
    except ValidationError as e:
        raise LanguageResourceError(f"{path.name}: {e}") from e


class LanguageRegistry:
    """
    Immutable set of language profiles, in registration order.

    Detection checks languages in this order, so the first registered
    language whose patterns match wins.
    """

    def __init__(
        self,
        languages: Mapping[str, LanguageProfile],
        version: int = 1,
        source: str = "builtin",
    ):
        self._languages: Dict[str, LanguageProfile] = dict(languages)
        self.version = version
        self.source = source

    @classmethod
    def builtin(cls) -> "LanguageRegistry":
        """Registry with the built-in English and Russian tables."""
        return cls(
            {code: _build_profile(code, data) for code, data in BUILTIN_LANGUAGES.items()},
            source="builtin",
        )

    @classmethod
    def load(cls, directory: Optional[Union[str, Path]]) -> "LanguageRegistry":
        """
        Load every *.json document from directory.

        Falls back to the built-in tables when the directory is missing,
        holds no documents, or any document fails to parse.
        """
        if directory is None or not Path(directory).is_dir():
            logger.info("language_resources_missing", directory=str(directory), fallback="builtin")
            return cls.builtin()

        directory = Path(directory)
        languages: Dict[str, LanguageProfile] = {}
        try:
            for path in sorted(directory.glob("*.json")):
                profile = read_language_file(path)
                languages[profile.code] = profile
        except LanguageResourceError as e:
            logger.warning("language_resource_invalid", directory=str(directory), error=str(e), fallback="builtin")
            return cls.builtin()

        if not languages:
            return cls.builtin()

        return cls(languages, source=str(directory))

    def merged(self, overrides: Optional[Mapping[str, Mapping[str, Any]]]) -> "LanguageRegistry":
        """
        Return a new registry with overrides applied.

        For an existing language, custom stop_words are appended to the
        current list (duplicates kept) and every other key is overwritten.
        Unknown codes are registered as new languages after existing ones.
        """
        if not overrides:
            return self

        languages = dict(self._languages)
        for code, custom in overrides.items():
            custom = dict(custom)
            current = languages.get(code)
            if current is None:
                languages[code] = _build_profile(code, custom)
                continue

            data = current.model_dump(exclude_none=True)
            if "stop_words" in custom:
                custom["stop_words"] = list(current.stop_words) + list(custom["stop_words"])
            data.update(custom)
            languages[code] = _build_profile(code, data)

        return LanguageRegistry(languages, version=self.version + 1, source=self.source)

    def get(self, code: str) -> Optional[LanguageProfile]:
        return self._languages.get(code)

    def stop_words(self, code: str) -> FrozenSet[str]:
        profile = self._languages.get(code)
        return profile.stop_word_set() if profile else frozenset()

    def endings(self, code: str) -> Tuple[str, ...]:
        profile = self._languages.get(code)
        return profile.endings if profile else ()

    def available(self) -> Dict[str, str]:
        """Language code -> display name."""
        return {code: profile.display_name for code, profile in self._languages.items()}

    def codes(self) -> List[str]:
        return list(self._languages)

    def __iter__(self) -> Iterator[LanguageProfile]:
        return iter(self._languages.values())

    def __contains__(self, code: object) -> bool:
        return code in self._languages

    def __len__(self) -> int:
        return len(self._languages)
