"""
Unit tests for VectorMemoryService.

Tests:
- store_memory(): validation, languages, limits, working memory links
- search_memories(): ranking, empty states
- delete / clear / importance / keywords / stats
- test_connection(): round trip
- TfIdfEngine statistics
"""

from datetime import datetime

import pytest

from agent_memory.vector import SemanticMemoryRecord, format_memory_link, truncate_content

DAY = 86400


def _store_all(service, profile_id, texts, clock=None, config=None):
    records = []
    for text in texts:
        result = service.store_memory(profile_id, text, config)
        assert result.success, result.message
        records.append(result.get("memory"))
        if clock is not None:
            clock.advance(60)
    return records


# ============================================================================
# Store
# ============================================================================

def test_store_memory(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "  the cat sat on the mat  ")

    assert result.success
    assert result.message == "Content stored in vector memory successfully. Generated 3 features (language: en)."
    assert result.get("language") == "en"
    assert result.get("features_count") == 3

    record = result.get("memory")
    assert record.content == "the cat sat on the mat"
    assert record.keywords == ["cat", "sat", "mat"]
    assert record.importance == 1.0
    assert vector_service.get_memory(profile_id, record.id) == record


def test_store_empty_content(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "   ")

    assert not result.success
    assert result.message == "Error: Cannot store empty content."


def test_store_detects_russian(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "привет мир это тест")

    assert result.get("language") == "ru"
    assert result.get("memory").keywords == ["привет", "мир", "тест"]


def test_store_forced_language(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "the cats", {"language_mode": "ru"})

    assert result.get("language") == "ru"
    # Russian tables do not know "the"
    assert result.get("memory").keywords == ["the", "cats"]
    # vectors are always built with the detected language
    assert set(result.get("memory").vector) == {"cats"}


def test_store_multilingual_mode(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "the cat and the dog", {"language_mode": "multilingual"})

    assert result.get("language") == "auto"
    assert result.get("memory").keywords == ["the", "cat", "and", "dog"]


def test_store_custom_stop_words(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "the cat sat on the mat", {"custom_stop_words_en": "cat, sat"})

    assert result.get("features_count") == 1
    assert result.get("memory").keywords == ["mat"]

    # overrides apply per call only
    plain = vector_service.store_memory(profile_id, "the cat sat on the mat")
    assert plain.get("features_count") == 3


def test_store_invalid_config(vector_service, profile_id):
    result = vector_service.store_memory(profile_id, "text", {"max_entries": 0})

    assert not result.success
    assert result.message.startswith("Error: Invalid vector memory configuration")


def test_store_evicts_oldest_at_max_entries(vector_service, profile_id, clock):
    config = {"max_entries": 2}
    first, second, third = _store_all(
        vector_service, profile_id, ["first note", "second note", "third note"], clock, config
    )

    remaining = [r.id for r in vector_service.get_memories(profile_id)]

    assert remaining == [third.id, second.id]
    assert vector_service.get_memory(profile_id, first.id) is None


def test_store_without_auto_cleanup_keeps_all(vector_service, profile_id, clock):
    config = {"max_entries": 2, "auto_cleanup": False}
    _store_all(vector_service, profile_id, ["first note", "second note", "third note"], clock, config)

    assert len(vector_service.get_memories(profile_id)) == 3


def test_store_adds_working_memory_link(vector_service, working_service, profile_id):
    config = {"integrate_with_memory": True, "memory_link_format": "short", "max_link_keywords": 2}

    result = vector_service.store_memory(profile_id, "the cat sat on the mat", config)

    assert result.message.endswith(" Added reference to regular memory.")
    assert working_service.get_formatted_memory(profile_id) == "1. Vector: cat, sat"


def test_store_link_without_working_memory(vector_store, engine, profile_id):
    from agent_memory.vector import VectorMemoryService

    service = VectorMemoryService(vector_store, engine)
    result = service.store_memory(profile_id, "the cat sat", {"integrate_with_memory": True})

    assert result.success
    assert "Added reference" not in result.message


# ============================================================================
# Link formatting
# ============================================================================

def test_format_memory_link_variants():
    created = datetime(2024, 3, 5, 14, 7).timestamp()
    record = SemanticMemoryRecord(profile_id="1", content="The user prefers concise answers", created_at=created)

    assert format_memory_link(record, ["user", "concise"], "short") == "Vector: user, concise"
    assert format_memory_link(record, ["user", "concise"], "timestamped") == "[03-05 14:07] Vector: user, concise"
    assert format_memory_link(record, ["user"], "descriptive") == (
        "Vector memory about: The user prefers concise answers "
        "(search: [vectormemory search]user[/vectormemory])"
    )


def test_truncate_content():
    assert truncate_content("short", 10) == "short"
    assert truncate_content("abcdefghij klmnop", 12) == "abcdefghij..."
    assert truncate_content("abc defghijklmnop", 12) == "abc defghijk..."
    assert truncate_content("abcdefghij klmnop", 12, respect_word_boundaries=False) == "abcdefghij k..."


# ============================================================================
# Search
# ============================================================================

def test_search_memories(vector_service, profile_id, clock):
    hiking, _, _ = _store_all(
        vector_service,
        profile_id,
        [
            "The user loves hiking in the Alps",
            "Python is a programming language",
            "Cats sleep most of the day",
        ],
        clock,
    )

    result = vector_service.search_memories(profile_id, "hiking in mountains")

    assert result.success
    assert result.message == "Found 1 similar memories."
    assert result.get("total_searched") == 3
    hits = result.get("results")
    assert [h.record.id for h in hits] == [hiking.id]
    assert 0 < hits[0].score <= 1


def test_search_text_cuts_content_to_display_length(vector_service, profile_id, clock):
    long_content = " ".join(["cats chase"] * 30)
    _store_all(vector_service, profile_id, [long_content, "dogs bark loudly"], clock)

    result = vector_service.search_memories(profile_id, "cats", {"display_content_length": 100})

    lines = result.get("text").splitlines()
    assert lines[0] == "Found 1 similar memories for 'cats':"
    assert lines[2].startswith("• [ID:")
    assert "% match, " in lines[2]
    assert lines[2].endswith("...")
    assert long_content not in result.get("text")


def test_search_text_without_hits(vector_service, profile_id):
    vector_service.store_memory(profile_id, "cats chase mice")

    result = vector_service.search_memories(profile_id, "quantum physics")

    assert result.get("text") == "No similar memories found for query: 'quantum physics'. Try broader search terms."


def test_search_empty_query(vector_service, profile_id):
    result = vector_service.search_memories(profile_id, "  ")

    assert not result.success
    assert result.message == "Error: Search query cannot be empty."


def test_search_empty_corpus(vector_service, profile_id):
    result = vector_service.search_memories(profile_id, "anything")

    assert result.success
    assert result.message == "No memories found. Store some content first."
    assert result.get("results") == []


def test_search_is_scoped_to_profile(vector_service):
    vector_service.store_memory("1", "cats are lovely")
    vector_service.store_memory("2", "dogs are loyal")

    result = vector_service.search_memories("2", "cats")

    assert result.get("total_searched") == 1
    assert result.get("results") == []


def test_search_respects_limit(vector_service, profile_id, clock):
    _store_all(vector_service, profile_id, [f"cats note {i}" for i in range(5)], clock)

    result = vector_service.search_memories(profile_id, "cats", {"search_limit": 2, "similarity_threshold": 0.0})

    assert len(result.get("results")) == 2


def test_search_by_keywords(vector_service, profile_id, clock):
    both, cat_only = _store_all(vector_service, profile_id, ["cats chase mice", "cats sleep"], clock)

    assert [r.id for r in vector_service.search_by_keywords(profile_id, ["cats"])] == [cat_only.id, both.id]
    assert [r.id for r in vector_service.search_by_keywords(profile_id, ["CATS", "mice"])] == [both.id]
    assert vector_service.search_by_keywords(profile_id, []) == []


# ============================================================================
# Recent / delete / clear
# ============================================================================

def test_recent_memories(vector_service, profile_id, clock):
    records = _store_all(vector_service, profile_id, ["one note", "two note", "three note"], clock)

    result = vector_service.get_recent_memories(profile_id, 2)

    assert result.message == "Retrieved 2 recent memories."
    assert [r.id for r in result.get("memories")] == [records[2].id, records[1].id]

    clamped = vector_service.get_recent_memories(profile_id, 0)
    assert len(clamped.get("memories")) == 1


def test_recent_memories_text(vector_service, profile_id, clock):
    _store_all(vector_service, profile_id, ["the cat sat on the mat", "dogs bark loudly"], clock)

    text = vector_service.get_recent_memories(profile_id).get("text")

    lines = text.splitlines()
    assert lines[0] == "Recent 2 memories:"
    assert lines[2].endswith("features] dogs bark loudly")
    assert "3 features] the cat sat on the mat" in lines[3]


def test_recent_memories_empty_text(vector_service, profile_id):
    assert vector_service.get_recent_memories(profile_id).get("text") == "No memories stored yet."


def test_recent_memories_invalid_display_length(vector_service, profile_id):
    result = vector_service.get_recent_memories(profile_id, config={"display_content_length": 50})

    assert not result.success
    assert result.message.startswith("Error: Invalid vector memory configuration")


def test_delete_memory(vector_service, profile_id):
    record = vector_service.store_memory(profile_id, "delete me please").get("memory")

    assert vector_service.delete_memory(profile_id, record.id).message == "Vector memory deleted successfully."
    missing = vector_service.delete_memory(profile_id, record.id)
    assert not missing.success
    assert missing.message == "Memory not found."


def test_delete_memory_other_profile(vector_service):
    record = vector_service.store_memory("1", "private note").get("memory")

    assert not vector_service.delete_memory("2", record.id).success
    assert vector_service.get_memory("1", record.id) is not None


def test_delete_best_match_by_id(vector_service, profile_id):
    record = vector_service.store_memory(profile_id, "delete by id").get("memory")

    result = vector_service.delete_best_match(profile_id, str(record.id))

    assert result.success
    assert vector_service.get_memory(profile_id, record.id) is None


def test_delete_best_match_by_content(vector_service, profile_id, clock):
    hiking, python = _store_all(
        vector_service, profile_id, ["The user loves hiking", "Python programming language"], clock
    )

    result = vector_service.delete_best_match(profile_id, "python language")

    assert result.success
    assert result.message.startswith(f"Deleted memory (ID:{python.id}, ")
    assert result.message.endswith("Python programming language")
    assert vector_service.get_memory(profile_id, hiking.id) is not None


def test_delete_best_match_no_match(vector_service, profile_id):
    vector_service.store_memory(profile_id, "The user loves hiking")

    result = vector_service.delete_best_match(profile_id, "quantum chromodynamics")

    assert not result.success
    assert result.message == (
        "No memory found matching 'quantum chromodynamics'. Try using exact ID or different search terms."
    )


def test_delete_best_match_empty(vector_service, profile_id):
    result = vector_service.delete_best_match(profile_id, " ")
    assert result.message == "Error: Please provide memory ID or content to search for deletion."


def test_clear_memories(vector_service, profile_id, db):
    vector_service.store_memory(profile_id, "first")
    vector_service.store_memory(profile_id, "second")
    vector_service.store_memory("other", "kept")

    result = vector_service.clear_memories(profile_id)

    assert result.message == "Cleared 2 vector memories successfully."
    assert result.get("deleted_count") == 2
    assert vector_service.get_memories(profile_id) == []
    assert len(vector_service.get_memories("other")) == 1
    assert db.stats("idf_cache")["count"] == 0


# ============================================================================
# Importance
# ============================================================================

def test_update_importance_clamped(vector_service, profile_id):
    record = vector_service.store_memory(profile_id, "important fact").get("memory")

    high = vector_service.update_importance(profile_id, record.id, 10)
    assert high.message == "Memory importance updated successfully."
    assert high.get("memory").importance == 5.0

    low = vector_service.update_importance(profile_id, record.id, -1)
    assert low.get("memory").importance == pytest.approx(0.1)


def test_update_importance_missing(vector_service, profile_id):
    assert vector_service.update_importance(profile_id, 999, 2.0).message == "Memory not found."


def test_boost_and_diminish(vector_service, profile_id):
    record = vector_service.store_memory(profile_id, "important fact").get("memory")

    assert vector_service.boost(profile_id, record.id).get("memory").importance == pytest.approx(1.1)
    assert vector_service.diminish(profile_id, record.id, 0.5).get("memory").importance == pytest.approx(0.6)
    assert vector_service.diminish(profile_id, record.id, 5).get("memory").importance == pytest.approx(0.1)
    assert not vector_service.boost(profile_id, 999).success


def test_record_helpers(clock):
    record = SemanticMemoryRecord(
        profile_id="1",
        content="x",
        vector={"a": 1.0},
        keywords=["Cats"],
        importance=4.95,
        created_at=clock() - 2 * DAY,
    )

    assert record.vector_size == 1
    assert record.age_in_days(clock()) == pytest.approx(2.0)
    assert record.has_keyword("cats")
    assert record.boost() == 5.0
    assert record.diminish(10) == pytest.approx(0.1)


# ============================================================================
# Stats / connection
# ============================================================================

def test_stats(vector_service, profile_id, clock):
    first, _, last = _store_all(vector_service, profile_id, ["cat dog", "cat bird", "fish"], clock)

    stats = vector_service.get_stats(profile_id, {"max_entries": 3})

    assert stats["total_memories"] == 3
    assert stats["max_entries"] == 3
    assert stats["usage_percentage"] == 100.0
    assert stats["average_vector_size"] == pytest.approx(1.7)
    assert stats["vocabulary_size"] == 4
    assert stats["is_near_limit"] is True
    assert stats["is_over_limit"] is False
    assert stats["oldest_memory"] == first.created_at
    assert stats["newest_memory"] == last.created_at


def test_stats_empty(vector_service, profile_id):
    stats = vector_service.get_stats(profile_id)

    assert stats["total_memories"] == 0
    assert stats["average_vector_size"] == 0
    assert stats["oldest_memory"] is None


def test_test_connection(vector_service, profile_id):
    result = vector_service.test_connection(profile_id)

    assert result.success
    assert result.message == "Vector memory service is working correctly."
    assert result.get("features_generated") > 0
    assert vector_service.get_memories(profile_id) == []


def test_engine_statistics(vector_service, engine):
    vector_service.store_memory("1", "cat dog")
    vector_service.store_memory("2", "cat bird")

    stats = engine.get_statistics()

    assert stats["total_memories"] == 2
    assert stats["average_vector_size"] == 2.0
    assert stats["estimated_vocabulary_size"] == 3
    assert engine.get_available_languages() == {"ru": "Russian", "en": "English"}


def test_storage_failure_reported(vector_service, profile_id, db):
    db.close()

    result = vector_service.store_memory(profile_id, "text")
    assert not result.success
    assert result.message.startswith("Error storing content:")

    stats = vector_service.get_stats(profile_id)
    assert stats["total_memories"] == 0
    assert "error" in stats
