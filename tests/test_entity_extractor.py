from tutor_engine.extractors.entity_extractor import (
    entity_stats,
    extract_entities,
    extract_entities_from_history,
    extract_markers,
    is_mixed_vernacular,
    vernacular_word_count,
)
from tutor_engine.models import EntitySet, Message, MessageRole


def test_extracts_names_places_subjects_and_institutions():
    entities = extract_entities("Ali from Lahore studies physics at LUMS")
    assert entities.names == ["Ali"]
    assert entities.places == ["Lahore"]
    assert entities.subjects == ["physics"]
    assert entities.institutions == ["LUMS"]


def test_subject_keywords_map_to_canonical_subject():
    entities = extract_entities("algebra and calculus homework")
    assert entities.subjects == ["mathematics"]


def test_structural_entities():
    entities = extract_entities("My exam is on 12/05/2024, mail ali@example.com or call 03001234567")
    assert "12/05/2024" in entities.dates
    assert entities.emails == ["ali@example.com"]
    assert entities.phones == ["03001234567"]
    assert "exam" in entities.events


def test_non_string_and_empty_input_yield_empty_set():
    for value in (None, 42, "", "   ", ["text"]):
        entities = extract_entities(value)
        assert isinstance(entities, EntitySet)
        assert entities.is_empty()


def test_markers_by_category():
    markers = extract_markers("yaar kya scene hai, bilkul theek")
    assert markers["casual"] == ["yaar"]
    assert markers["question"] == ["kya"]
    assert markers["emphasis"] == ["bilkul"]
    assert markers["affirmative"] == ["theek"]
    assert extract_markers(None) == {}


# --- adversarial homographs ---


def test_english_words_containing_vernacular_tokens_are_not_flagged():
    text = "I ate a banana on the chair"
    assert vernacular_word_count(text) == 0
    assert is_mixed_vernacular(text) is False


def test_english_homographs_are_not_vernacular():
    assert is_mixed_vernacular("The main point is correct, nope, not that mat") is False


def test_lowercase_fast_is_not_an_institution():
    assert extract_entities("We need to move fast").institutions == []
    assert extract_entities("I got into FAST").institutions == ["FAST"]


def test_name_inside_another_word_is_not_a_name():
    assert extract_entities("The alibi was solid").names == []


def test_mixed_vernacular_detection():
    assert is_mixed_vernacular("yaar ye question mushkil hai") is True


def test_history_entities_come_from_user_turns_only():
    history = [
        Message(text="I love chemistry", role=MessageRole.USER),
        Message(text="Biology is great too", role=MessageRole.ASSISTANT),
        Message(text="Karachi mein exam hai", role=MessageRole.USER),
    ]
    entities = extract_entities_from_history(history)
    assert entities.subjects == ["chemistry"]
    assert entities.places == ["Karachi"]
    assert entities.events == ["exam"]


def test_entity_stats_total():
    stats = entity_stats("Ali from Lahore studies physics")
    assert stats["names"] == 1
    assert stats["places"] == 1
    assert stats["subjects"] == 1
    assert stats["total"] == sum(v for k, v in stats.items() if k != "total")
