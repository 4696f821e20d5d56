"""
Unit tests for language resources and tokenization.

Tests:
- LanguageRegistry: built-in tables, JSON loading, fallback, merge
- detect_language(): Cyrillic ratio and sample-word rules
- tokenize(): normalization, stop words, byte-length filter, stemming
- stem(): configured suffix order
"""

import json

import pytest
from structlog.testing import capture_logs

from agent_memory.config.settings import PACKAGED_LANGUAGES_DIR
from agent_memory.vector import LanguageRegistry, LanguageResourceError, Tokenizer, stem
from agent_memory.vector.languages import read_language_file
from agent_memory.vector.tokenizer import cyrillic_ratio


@pytest.fixture
def tokenizer(registry):
    return Tokenizer(registry)


# ============================================================================
# Registry
# ============================================================================

def test_builtin_registry(registry):
    assert registry.codes() == ["ru", "en"]
    assert registry.available() == {"ru": "Russian", "en": "English"}
    assert "the" in registry.stop_words("en")
    assert registry.endings("en")[0] == "tion"
    assert registry.source == "builtin"
    assert len(registry) == 2


def test_unknown_language_has_no_tables(registry):
    assert registry.stop_words("auto") == frozenset()
    assert registry.endings("auto") == ()
    assert registry.get("auto") is None


def test_load_packaged_resources():
    registry = LanguageRegistry.load(PACKAGED_LANGUAGES_DIR)

    assert registry.source == str(PACKAGED_LANGUAGES_DIR)
    assert set(registry.codes()) == {"en", "ru"}
    assert registry.get("ru").detection_patterns.charset == "cyrillic"


def test_load_missing_directory_falls_back(tmp_path):
    registry = LanguageRegistry.load(tmp_path / "missing")
    assert registry.source == "builtin"
    assert "en" in registry


def test_load_empty_directory_falls_back(tmp_path):
    assert LanguageRegistry.load(tmp_path).source == "builtin"


def test_load_invalid_document_falls_back(tmp_path):
    (tmp_path / "en.json").write_text(json.dumps({"name": "English", "stop_words": [], "endings": []}))
    (tmp_path / "xx.json").write_text("{not json")

    with capture_logs() as logs:
        registry = LanguageRegistry.load(tmp_path)

    assert registry.source == "builtin"
    assert any(e["event"] == "language_resource_invalid" for e in logs)


def test_read_language_file_requires_tables(tmp_path):
    path = tmp_path / "de.json"
    path.write_text(json.dumps({"name": "German", "stop_words": ["und"]}))

    with pytest.raises(LanguageResourceError):
        read_language_file(path)


def test_load_custom_directory(tmp_path):
    (tmp_path / "de.json").write_text(
        json.dumps({"name": "German", "stop_words": ["und", "der"], "endings": ["en"]}),
        encoding="utf-8",
    )

    registry = LanguageRegistry.load(tmp_path)

    assert registry.codes() == ["de"]
    assert registry.get("de").code == "de"


def test_merge_appends_stop_words(registry):
    merged = registry.merged({"en": {"stop_words": ["cat", "the"]}})

    assert merged.version == registry.version + 1
    assert merged.get("en").stop_words[-2:] == ("cat", "the")
    assert "cat" in merged.stop_words("en")
    # endings untouched, original registry unchanged
    assert merged.endings("en") == registry.endings("en")
    assert "cat" not in registry.stop_words("en")


def test_merge_overwrites_other_keys(registry):
    merged = registry.merged({"en": {"endings": ["s"], "name": "Basic English"}})

    assert merged.endings("en") == ("s",)
    assert merged.available()["en"] == "Basic English"


def test_merge_registers_new_language_last(registry):
    merged = registry.merged({"de": {"name": "German", "stop_words": ["und"], "endings": ["en"]}})

    assert merged.codes() == ["ru", "en", "de"]


def test_merge_without_overrides_returns_same_registry(registry):
    assert registry.merged({}) is registry
    assert registry.merged(None) is registry


# ============================================================================
# Language detection
# ============================================================================

def test_cyrillic_ratio():
    assert cyrillic_ratio("") == 0.0
    assert cyrillic_ratio("abc") == 0.0
    assert cyrillic_ratio("мир") == 1.0


def test_detect_russian(tokenizer):
    assert tokenizer.detect_language("привет мир это тест") == "ru"


def test_detect_english(tokenizer):
    assert tokenizer.detect_language("hello world, this is a test") == "en"


def test_detect_empty_text(tokenizer):
    assert tokenizer.detect_language("") == "en"


def test_detect_mostly_latin_with_some_cyrillic(tokenizer):
    assert tokenizer.detect_language("the word мир appears once in this sentence") == "en"


def test_detect_with_charset_pattern():
    registry = LanguageRegistry.load(PACKAGED_LANGUAGES_DIR)
    tokenizer = Tokenizer(registry)

    # exactly at the 0.3 threshold: the pattern uses >=, the fallback uses >
    text = "абв" + "x" * 7
    assert tokenizer.detect_language(text) == "ru"
    assert Tokenizer(LanguageRegistry.builtin()).detect_language(text) == "en"


def test_detect_with_sample_words(registry):
    tokenizer = Tokenizer(registry.merged({
        "de": {
            "name": "German",
            "stop_words": ["und", "der", "die"],
            "endings": ["en"],
            "detection_patterns": {"sample_words": ["und", "der", "die"]},
        }
    }))

    assert tokenizer.detect_language("Der Hund und die Katze") == "de"
    assert tokenizer.detect_language("und then something else") == "en"


# ============================================================================
# Tokenization
# ============================================================================

def test_tokenize_removes_stop_words_and_short_tokens(tokenizer):
    assert tokenizer.tokenize("the cat sat on the mat") == ["cat", "sat", "mat"]


def test_tokenize_stems(tokenizer):
    assert tokenizer.tokenize("The cats were sleeping") == ["cats", "sleep"]


def test_tokenize_keeps_duplicates_in_order(tokenizer):
    assert tokenizer.tokenize("dog cat dog") == ["dog", "cat", "dog"]


def test_tokenize_replaces_punctuation_and_underscores(tokenizer):
    assert tokenizer.tokenize("Hello, world! foo_bar 42nd") == ["hello", "world", "foo", "bar", "42nd"]


def test_tokenize_uses_byte_length(tokenizer):
    # two Cyrillic letters are four bytes, so the token survives
    assert tokenizer.tokenize("ёж", "ru") == ["ёж"]


def test_tokenize_russian(tokenizer):
    assert tokenizer.tokenize("Мы будем работать и это важно") == ["будем", "работ", "важно"]


def test_tokenize_empty(tokenizer):
    assert tokenizer.tokenize("") == []
    assert tokenizer.tokenize("the and or") == []


def test_tokenize_unknown_language_skips_tables(tokenizer):
    assert tokenizer.tokenize("the walking", "auto") == ["the", "walking"]


def test_extract_keywords_unique(tokenizer):
    assert tokenizer.extract_keywords("dog cat dog bird cat") == ["dog", "cat", "bird"]


def test_custom_stop_words(registry, tokenizer):
    custom = Tokenizer(registry.merged({"en": {"stop_words": ["cat"]}}))

    assert custom.tokenize("the cat sat on the mat") == ["sat", "mat"]
    assert custom.registry.version == registry.version + 1
    assert tokenizer.tokenize("the cat sat on the mat") == ["cat", "sat", "mat"]


# ============================================================================
# Stemming
# ============================================================================

def test_stem_follows_configured_order():
    assert stem("walkers", ["s", "ers"]) == "walker"
    assert stem("walkers", ["ers", "s"]) == "walk"


def test_stem_requires_long_enough_word():
    # length must exceed len(suffix) + 3
    assert stem("cats", ["s"]) == "cats"
    assert stem("hats", ["s"]) == "hats"
    assert stem("boats", ["s"]) == "boat"


def test_stem_no_match():
    assert stem("python", ["ing", "ed"]) == "python"


def test_stem_counts_bytes():
    # "ов" is four bytes, so "домов" (ten bytes) qualifies
    assert stem("домов", ["ов"]) == "дом"
