"""
Language-aware tokenization.

Lowercases, replaces anything that is not a letter or digit with a space,
drops short tokens and stop words, then strips the first matching suffix.
The suffix stripping is a heuristic, not linguistic stemming: suffixes are
tried in configured order, with no longest-match preference.
"""

import re
import unicodedata
from typing import List, Optional

from .languages import LanguageRegistry

DEFAULT_LANGUAGE = "en"
CYRILLIC_FALLBACK_RATIO = 0.3
MIN_SAMPLE_WORD_MATCHES = 2
MIN_TOKEN_BYTES = 3
STEM_MIN_REMAINDER = 3

_NON_WORD = re.compile(r"[\W_]+")


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def cyrillic_ratio(text: str) -> float:
    """Share of Cyrillic characters among all characters (0.0 for empty text)."""
    if not text:
        return 0.0
    cyrillic = sum(1 for ch in text if unicodedata.name(ch, "").startswith("CYRILLIC"))
    return cyrillic / len(text)


def stem(word: str, endings) -> str:
    """
    Strip the first suffix in endings that the word ends with, provided
    the word is more than 3 bytes longer than the suffix.
    """
    for ending in endings:
        if _byte_len(word) > _byte_len(ending) + STEM_MIN_REMAINDER and word.endswith(ending):
            return word[: -len(ending)]
    return word


class Tokenizer:
    """
    Tokenizer bound to a LanguageRegistry.

    Usage:
        >>> tokenizer = Tokenizer(LanguageRegistry.builtin())
        >>> tokenizer.tokenize("The cats were sleeping")
        ['cats', 'sleep']
    """

    def __init__(self, registry: Optional[LanguageRegistry] = None):
        """
        Initialize tokenizer.

        Args:
            registry: Language tables (built-in English/Russian if omitted)
        """
        self.registry = registry or LanguageRegistry.builtin()

    def detect_language(self, text: str) -> str:
        """
        Guess the language code of text.

        Registered detection patterns are checked in registration order;
        otherwise more than 30% Cyrillic characters means "ru", else "en".
        """
        text = text.lower()
        if not text:
            return DEFAULT_LANGUAGE

        ratio = cyrillic_ratio(text)

        for profile in self.registry:
            patterns = profile.detection_patterns
            if patterns is None:
                continue

            if patterns.charset == "cyrillic" and ratio >= patterns.threshold:
                return profile.code

            if patterns.sample_words:
                matches = sum(1 for word in patterns.sample_words if word in text)
                if matches >= MIN_SAMPLE_WORD_MATCHES:
                    return profile.code

        return "ru" if ratio > CYRILLIC_FALLBACK_RATIO else DEFAULT_LANGUAGE

    def tokenize(self, text: str, language: Optional[str] = None) -> List[str]:
        """
        Split text into stemmed tokens, keeping order and duplicates.

        Args:
            text: Input text
            language: Language code (detected when None)

        Returns:
            List of tokens
        """
        if language is None:
            language = self.detect_language(text)

        text = _NON_WORD.sub(" ", text.lower())
        stop_words = self.registry.stop_words(language)
        endings = self.registry.endings(language)

        return [
            stem(word, endings)
            for word in text.split()
            if _byte_len(word) >= MIN_TOKEN_BYTES and word not in stop_words
        ]

    def extract_keywords(self, text: str, language: Optional[str] = None) -> List[str]:
        """Unique tokens in first-seen order."""
        return list(dict.fromkeys(self.tokenize(text, language)))
