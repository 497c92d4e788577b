"""Preference memory store, registry and persistence adapters."""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from tutor_engine.config import EngineConfig
from tutor_engine.memory import (
    InMemoryPersistenceAdapter,
    InteractionMetadata,
    JsonFilePersistenceAdapter,
    MemoryStoreRegistry,
    PersistenceAdapter,
    PreferenceMemoryStore,
)
from tutor_engine.models import (
    FeedbackIssue,
    FormalityLevel,
    Intent,
    MarkerDensity,
    PersonaId,
    ResponseLength,
    UserState,
)


class FailingAdapter(PersistenceAdapter):
    def save(self, user_id, data):
        raise IOError("disk full")

    def load(self, user_id):
        raise IOError("unreachable")

    def delete(self, user_id):
        raise IOError("unreachable")


@pytest.fixture
def store(config, adapter):
    return PreferenceMemoryStore("u1", adapter=adapter, config=config)


# --- interactions ---


def test_formal_message_sets_formal_preference(store):
    store.record_interaction("Could you please explain the theorem")
    profile = store.profile
    assert profile.preferred_formality == FormalityLevel.FORMAL
    assert profile.formality_confidence == pytest.approx(1.0)
    assert profile.response_length == ResponseLength.MEDIUM
    assert profile.interaction_count == 1


def test_casual_message_sets_casual_preference(store):
    store.record_interaction("yaar ye question mushkil hai")
    assert store.profile.preferred_formality == FormalityLevel.CASUAL
    assert store.profile.vernacular_ratio > 0


def test_majority_casual_interactions_set_casual_preference(store):
    for _ in range(3):
        store.record_interaction("yaar ye question mushkil hai")
    for _ in range(2):
        store.record_interaction("Could you please explain the theorem")
    profile = store.profile
    assert profile.preferred_formality == FormalityLevel.CASUAL
    assert profile.formality_confidence == pytest.approx(0.6)


def test_even_split_has_no_register_preference(store):
    for _ in range(2):
        store.record_interaction("yaar ye question mushkil hai")
        store.record_interaction("Could you please explain the theorem")
    assert store.profile.preferred_formality == FormalityLevel.NEUTRAL


def test_short_messages_prefer_concise(store):
    for _ in range(3):
        store.record_interaction("ok thanks")
    assert store.profile.response_length == ResponseLength.CONCISE


@pytest.mark.parametrize("message", ["", "   ", None, 7])
def test_empty_message_changes_nothing(store, message):
    assert store.record_interaction(message) is None
    assert store.profile.interaction_count == 0


def test_metadata_dict_is_accepted(store):
    interaction_id = store.record_interaction(
        "Tell me about physics", metadata={"intent": "learning_focused", "persona": "socratic"}
    )
    profile = store.profile
    assert profile.interactions[-1].interaction_id == interaction_id
    assert profile.interactions[-1].persona == PersonaId.SOCRATIC
    assert profile.intents == {"learning_focused": 1}
    assert profile.topics["physics"] == 1


def test_malformed_metadata_is_ignored(store):
    assert store.record_interaction("hello there", metadata={"intent": "not-an-intent"}) is not None
    assert store.profile.intents == {}


def test_profile_property_is_a_copy(store):
    store.record_interaction("hello there")
    snapshot = store.profile
    snapshot.interaction_count = 99
    assert store.profile.interaction_count == 1


def test_interaction_records_are_bounded(adapter):
    store = PreferenceMemoryStore("u1", adapter=adapter, config=EngineConfig(interaction_record_limit=3))
    for i in range(5):
        store.record_interaction(f"message number {i}")
    profile = store.profile
    assert len(profile.interactions) == 3
    assert profile.interaction_count == 5
    assert profile.interactions[0].message == "message number 2"


def test_likes_and_dislikes_are_captured(store):
    store.record_interaction("I really like organic chemistry but not the lab reports")
    store.record_interaction("I hate integration.")
    profile = store.profile
    assert profile.likes == ["organic chemistry"]
    assert profile.dislikes == ["integration"]


def test_event_log_is_bounded(store):
    for i in range(12):
        store.record_interaction(f"My exam number {i} is coming")
    log = store.profile.event_log
    assert len(log) == 10
    assert all(event.kind == "event_mention" for event in log)


def test_notable_intents_are_logged(store):
    store.record_interaction("I passed my driving test!", metadata=InteractionMetadata(intent=Intent.ACHIEVEMENT_ANNOUNCEMENT))
    assert store.profile.event_log[0].kind == "achievement_announcement"


# --- feedback ---


def test_too_formal_feedback_moves_toward_neutral(store):
    interaction_id = store.record_interaction("Could you please explain the theorem")
    assert store.record_feedback(interaction_id, {"rating": 2, "issue": "too_formal"}) is True
    profile = store.profile
    assert profile.preferred_formality == FormalityLevel.NEUTRAL
    assert profile.formality_confidence == pytest.approx(0.8)
    assert profile.marker_density == MarkerDensity.MEDIUM
    assert profile.satisfaction_score == pytest.approx(0.425)
    assert profile.feedback_count == 1


def test_too_long_feedback_moves_to_concise(store):
    interaction_id = store.record_interaction("Could you please explain the theorem")
    store.record_feedback(interaction_id, {"issue": FeedbackIssue.TOO_LONG})
    profile = store.profile
    assert profile.response_length == ResponseLength.CONCISE
    assert profile.average_message_length == 15.0
    assert profile.response_length_confidence == pytest.approx(0.4)


def test_issue_with_high_rating_is_not_applied(store):
    interaction_id = store.record_interaction("Could you please explain the theorem")
    store.record_feedback(interaction_id, {"rating": 4, "issue": "too_formal"})
    assert store.profile.preferred_formality == FormalityLevel.FORMAL


def test_positive_feedback_reinforces_persona_and_feature(store):
    interaction_id = store.record_interaction(
        "Tell me about physics", metadata=InteractionMetadata(persona=PersonaId.SOCRATIC)
    )
    store.record_feedback(interaction_id, {"rating": 5, "appreciated_feature": "Worked Examples"})
    profile = store.profile
    assert profile.preferred_personas == [PersonaId.SOCRATIC]
    assert "worked examples" in profile.likes
    assert profile.topics["physics"] == 2


def test_wrong_persona_excludes_until_liked_again(store):
    first = store.record_interaction("explain vectors", metadata=InteractionMetadata(persona=PersonaId.FORMAL))
    store.record_feedback(first, {"issue": "wrong_persona"})
    assert PersonaId.FORMAL in store.profile.excluded_personas

    second = store.record_interaction("explain matrices", metadata=InteractionMetadata(persona=PersonaId.FORMAL))
    store.record_feedback(second, {"polarity": "positive"})
    assert PersonaId.FORMAL not in store.profile.excluded_personas


def test_feedback_for_unknown_interaction_is_rejected(store):
    assert store.record_feedback("missing", {"rating": 5}) is False
    assert store.profile.feedback_count == 0


def test_malformed_feedback_is_rejected(store):
    interaction_id = store.record_interaction("hello there")
    assert store.record_feedback(interaction_id, {"rating": 9}) is False


def test_feedback_log_is_bounded(adapter):
    store = PreferenceMemoryStore("u1", adapter=adapter, config=EngineConfig(feedback_log_limit=2))
    interaction_id = store.record_interaction("hello there")
    for _ in range(4):
        store.record_feedback(interaction_id, {"rating": 4})
    assert len(store.profile.feedback_log) == 2
    assert store.profile.feedback_count == 4


# --- recommendations ---


def test_proactive_questions_are_capped_at_three(store):
    for message in ("Tell me about physics", "Tell me about chemistry", "Tell me about algebra", "Tell me about physics"):
        store.record_interaction(message)
    questions = store.get_personalized_recommendations().proactive_questions
    assert len(questions) == 3
    assert questions[0] == "Would you like to explore physics further?"


def test_casual_users_get_roman_urdu_follow_ups(store):
    store.record_interaction("yaar physics mein help karo")
    questions = store.get_personalized_recommendations().proactive_questions
    assert questions == ["Yaar, physics mein aur kya explore karna chahoge?"]


def test_recommendation_follows_context(store, make_classification):
    recs = store.get_personalized_recommendations(make_classification(state=UserState.CONFUSED))
    assert recs.persona == PersonaId.FRIENDLY
    recs = store.get_personalized_recommendations(make_classification(Intent.BRAINSTORMING_COLLABORATIVE))
    assert recs.persona == PersonaId.SOCRATIC
    assert store.get_personalized_recommendations().persona is None


def test_analytics_summary(store):
    store.record_interaction("Tell me about physics", metadata={"user_state": "curious"})
    analytics = store.get_analytics()
    assert analytics["interaction_count"] == 1
    assert analytics["top_topics"] == ["physics"]
    assert analytics["emotional_histogram"] == {"curious": 1}


# --- import / export / persistence ---


def test_export_import_round_trip(store, config):
    store.record_interaction("Could you please explain the theorem")
    exported = json.dumps(store.export_profile())
    other = PreferenceMemoryStore("u2", config=config)
    assert other.import_profile(exported) is True
    assert other.profile.user_id == "u2"
    assert other.profile.preferred_formality == FormalityLevel.FORMAL


def test_export_reset_import_restores_profile(store):
    first = store.record_interaction("Could you please explain the theorem", metadata={"persona": "socratic"})
    store.record_interaction("Tell me about physics")
    store.record_feedback(first, {"rating": 5, "appreciated_feature": "examples"})
    exported = store.export_profile()

    store.reset()
    assert store.profile.interaction_count == 0
    assert store.import_profile(exported) is True
    assert store.export_profile() == exported
    assert store.profile.persona_scores[PersonaId.SOCRATIC].positive == 1


@pytest.mark.parametrize("payload", ["{not json", "[1, 2]", {"interaction_count": "lots"}, 42])
def test_corrupted_import_resets_to_defaults(store, payload):
    store.record_interaction("hello there")
    assert store.import_profile(payload) is False
    assert store.profile.interaction_count == 0


def test_flush_and_load(store, adapter, config):
    store.record_interaction("Tell me about physics")
    assert store.flush() is True
    assert "u1" in adapter

    reloaded = PreferenceMemoryStore("u1", adapter=adapter, config=config)
    assert reloaded.load() is True
    assert reloaded.profile.topics == {"physics": 1}


def test_load_without_stored_profile(store):
    assert store.load() is False


def test_adapter_failures_are_reported(config):
    store = PreferenceMemoryStore("u1", adapter=FailingAdapter(), config=config)
    store.record_interaction("hello there")
    assert store.flush() is False
    assert store.load() is False
    # a failed save is not rolled back
    assert store.profile.interaction_count == 1


def test_store_without_adapter(config):
    store = PreferenceMemoryStore("u1", config=config)
    assert store.flush() is False
    assert store.load() is False


def test_json_file_adapter(tmp_path, config):
    adapter = JsonFilePersistenceAdapter(str(tmp_path))
    store = PreferenceMemoryStore("user-42", adapter=adapter, config=config)
    store.record_interaction("yaar physics mein help karo")
    assert store.flush() is True
    assert (tmp_path / "user-42.json").exists()
    assert list(tmp_path.glob("*.tmp")) == []

    reloaded = PreferenceMemoryStore("user-42", adapter=adapter, config=config)
    assert reloaded.load() is True
    assert reloaded.profile.preferred_formality == FormalityLevel.CASUAL

    adapter.delete("user-42")
    assert adapter.load("user-42") is None


def test_json_file_adapter_rejects_unsafe_ids(tmp_path):
    adapter = JsonFilePersistenceAdapter(str(tmp_path))
    with pytest.raises(ValueError):
        adapter.save("../escape", {})
    with pytest.raises(ValueError):
        adapter.load("a/b")


# --- registry ---


@pytest.mark.parametrize("user_id", [None, "", "guest", "client_1234", "anonymous_x", "../etc", 5])
def test_registry_skips_anonymous_ids(registry, user_id):
    assert registry.get_store(user_id) is None


def test_registry_creates_store_at_most_once(adapter, config):
    registry = MemoryStoreRegistry(adapter, config)
    barrier = threading.Barrier(8)

    def fetch(_):
        barrier.wait()
        return registry.get_store("u1")

    with ThreadPoolExecutor(max_workers=8) as pool:
        stores = list(pool.map(fetch, range(8)))

    assert all(s is stores[0] for s in stores)
    assert registry.created_count == 1
    assert adapter.load_calls == 1


def test_registry_loads_existing_profile(adapter, config):
    seeded = PreferenceMemoryStore("u1", adapter=adapter, config=config)
    seeded.record_interaction("Tell me about physics")
    seeded.flush()

    registry = MemoryStoreRegistry(adapter, config)
    assert registry.get_store("u1").profile.interaction_count == 1


def test_registry_evicts_least_recently_used_and_flushes(adapter):
    registry = MemoryStoreRegistry(adapter, EngineConfig(max_tracked_users=2))
    registry.get_store("u1").record_interaction("hello there")
    registry.get_store("u2").record_interaction("hello again")
    registry.get_store("u1")
    registry.get_store("u3")

    assert registry.has_store("u1") is True
    assert registry.has_store("u2") is False
    assert "u2" in adapter
    assert registry.loaded_users() == ["u1", "u3"]


def test_flush_all(registry, adapter):
    registry.get_store("u1").record_interaction("hello there")
    registry.get_store("u2").record_interaction("hello again")
    assert registry.flush_all() == {"u1": True, "u2": True}
    assert "u1" in adapter and "u2" in adapter


def test_flush_all_reports_failures(config):
    registry = MemoryStoreRegistry(FailingAdapter(), config)
    registry.get_store("u1")
    assert registry.flush_all() == {"u1": False}


def test_reset_user(registry, adapter):
    registry.get_store("u1").record_interaction("hello there")
    registry.flush_all()
    assert registry.reset_user("u1") is True
    assert "u1" not in adapter
    assert registry.get_store("u1").profile.interaction_count == 0
    assert registry.reset_user("guest") is False


def test_reset_user_reports_delete_failure(config):
    registry = MemoryStoreRegistry(FailingAdapter(), config)
    assert registry.reset_user("u1") is False


def test_system_analytics(registry):
    registry.get_store("u1").record_interaction("Could you please explain the theorem")
    registry.get_store("u2").record_interaction("yaar ye question mushkil hai")
    analytics = registry.system_analytics()
    assert analytics["loaded_users"] == 2
    assert analytics["stores_created"] == 2
    assert analytics["total_interactions"] == 2
    assert analytics["formality_distribution"] == {"formal": 1, "casual": 1}
