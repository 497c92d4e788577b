"""End-to-end turns through the conversation orchestrator."""

import copy

import pytest

from tutor_engine import ConversationOrchestrator
from tutor_engine.config import EngineConfig
from tutor_engine.models import (
    ConvictionScenario,
    FeedbackPolarity,
    FlowLabel,
    Intent,
    PersonaId,
    SilencePattern,
    UserState,
)

FRUSTRATED = "yaar dimagh kharab ho gaya, samajh nahi aa raha"


# --- turns ---


def test_frustrated_roman_urdu_turn(orchestrator):
    decision = orchestrator.process_turn(FRUSTRATED, user_id="u1")
    assert decision.classification.intent == Intent.FRUSTRATED_SEEKING_HELP
    assert decision.classification.user_state == UserState.FRUSTRATED
    assert decision.persona.persona_id == PersonaId.FRIENDLY
    assert decision.persona.should_activate is True
    assert decision.interaction_id is not None
    assert decision.recommendations.persona == PersonaId.FRIENDLY
    assert "cultural_mixing" in decision.response_strategy.modifications
    assert decision.response_strategy.persona == PersonaId.FRIENDLY


def test_conviction_turn_changes_strategy(orchestrator):
    decision = orchestrator.process_turn("I will just memorize all the formulas", user_id="u1")
    assert decision.conviction.should_trigger is True
    assert decision.conviction.scenario == ConvictionScenario.INEFFICIENT_APPROACH
    assert decision.response_strategy.primary == "conviction_response"
    assert "conviction_integration" in decision.response_strategy.modifications
    assert decision.session_metrics.conviction_triggers == 1
    assert orchestrator.get_session(decision.session_id).conviction_active is True


def test_repeated_confusion_asks_for_new_approach(orchestrator, five_confused_turns):
    decision = orchestrator.process_turn("ok what next", five_confused_turns, user_id="u1")
    assert decision.flow.is_stuck is True
    assert "new_approach" in decision.response_strategy.modifications
    assert decision.conviction.scenario == ConvictionScenario.BETTER_ALTERNATIVE
    assert decision.response_strategy.primary == "conviction_response"


def test_history_is_not_modified(orchestrator, five_confused_turns):
    snapshot = copy.deepcopy(five_confused_turns)
    orchestrator.process_turn("ok what next", five_confused_turns, user_id="u1")
    assert five_confused_turns == snapshot


@pytest.mark.parametrize("message", ["", None, 3.5])
def test_bad_message_yields_defaults(orchestrator, message):
    decision = orchestrator.process_turn(message, [None, "junk"], user_id="u1")
    assert decision.classification.intent == Intent.TESTING_SYSTEM
    assert decision.persona.should_activate is False
    assert decision.conviction.should_trigger is False
    assert decision.interaction_id is None
    assert decision.flow.flow == FlowLabel.INITIAL


@pytest.mark.parametrize("user_id", [123, ["x"], {}])
def test_malformed_user_id_is_treated_as_anonymous(orchestrator, user_id):
    decision = orchestrator.process_turn("hello", user_id=user_id)
    assert decision.user_id is None
    assert decision.interaction_id is None
    assert orchestrator.create_session(user_id).user_id is None


def test_roman_urdu_confusion_counts_as_stuck(orchestrator):
    history = [{"role": "user", "text": "kya matlab hai iska"} for _ in range(5)]
    decision = orchestrator.process_turn("ok next", history, user_id="u1")
    assert decision.flow.is_stuck is True
    assert decision.conviction.should_trigger is True
    assert decision.conviction.scenario == ConvictionScenario.BETTER_ALTERNATIVE


def test_timestamp_feeds_silence_analysis(orchestrator):
    history = [{"role": "user", "text": "what is a vector?", "timestamp": "2026-01-01T10:00:00Z"}]
    decision = orchestrator.process_turn("ok, and a matrix?", history, user_id="u1", timestamp="2026-01-01T10:10:00Z")
    assert decision.classification.mood.silence_pattern == SilencePattern.PROLONGED
    untimed = orchestrator.process_turn("ok, and a matrix?", history, user_id="u1")
    assert untimed.classification.mood.silence_pattern == SilencePattern.NONE


# --- sessions ---


def test_turns_accumulate_in_default_session(orchestrator):
    first = orchestrator.process_turn("Hello there!", user_id="u1")
    second = orchestrator.process_turn(FRUSTRATED, user_id="u1")
    assert first.session_id == second.session_id

    metrics = second.session_metrics
    assert metrics.message_count == 2
    assert metrics.persona_switches == 1
    assert metrics.current_persona == PersonaId.FRIENDLY
    # first turn sets engagement, later turns average with it
    assert first.session_metrics.engagement_score == pytest.approx(1.0)
    assert metrics.engagement_score == pytest.approx(0.7)
    assert orchestrator.adaptive_store.recent_personas("u1") == [PersonaId.EDUCATOR, PersonaId.FRIENDLY]


def test_decision_metrics_are_a_snapshot(orchestrator):
    first = orchestrator.process_turn("Hello there!", user_id="u1")
    orchestrator.process_turn("Hello again!", user_id="u1")
    assert first.session_metrics.message_count == 1


def test_anonymous_turns_get_fresh_sessions(orchestrator):
    first = orchestrator.process_turn("Hello there!")
    second = orchestrator.process_turn("Hello there!")
    assert first.session_id != second.session_id
    assert first.interaction_id is None


def test_guest_ids_are_not_remembered(orchestrator, adapter):
    decision = orchestrator.process_turn("Hello there!", user_id="guest")
    assert decision.interaction_id is None
    assert orchestrator.memory_registry.has_store("guest") is False
    assert orchestrator.flush() == {}


def test_explicit_session(orchestrator):
    state = orchestrator.create_session("u2")
    by_id = orchestrator.process_turn("Hello there!", user_id="u2", session=state.session_id)
    by_object = orchestrator.process_turn("Hello there!", user_id="u2", session=state)
    assert by_id.session_id == by_object.session_id == state.session_id
    assert state.metrics.message_count == 2


def test_unknown_session_id_starts_a_new_session(orchestrator):
    decision = orchestrator.process_turn("Hello there!", user_id="u1", session="does-not-exist")
    assert decision.session_id != "does-not-exist"
    assert orchestrator.get_session(decision.session_id) is not None


def test_sessions_are_bounded():
    orchestrator = ConversationOrchestrator(config=EngineConfig(max_tracked_users=2))
    first = orchestrator.create_session()
    orchestrator.create_session()
    orchestrator.create_session()
    assert orchestrator.get_session(first.session_id) is None


def test_export_import_session(orchestrator, adapter, config):
    decision = orchestrator.process_turn("Hello there!", user_id="u1")
    exported = orchestrator.export_session(decision.session_id)
    assert isinstance(exported, str)

    restored = ConversationOrchestrator(config=config, persistence_adapter=adapter)
    assert restored.import_session(exported) is True
    follow_up = restored.process_turn("Hello again!", user_id="u1")
    assert follow_up.session_id == decision.session_id
    assert follow_up.session_metrics.message_count == 2


@pytest.mark.parametrize("payload", ["{broken", "[]", {"metrics": {"message_count": "many"}}])
def test_import_rejects_corrupted_session(orchestrator, payload):
    assert orchestrator.import_session(payload) is False


def test_export_unknown_session(orchestrator):
    assert orchestrator.export_session("missing") is None


def test_reset_session(orchestrator):
    decision = orchestrator.process_turn("Hello there!", user_id="u1")
    assert orchestrator.reset_session(decision.session_id) is True
    state = orchestrator.get_session(decision.session_id)
    assert state.metrics.message_count == 0
    assert state.user_id == "u1"
    assert orchestrator.reset_session("missing") is False


# --- feedback ---


def test_negative_feedback(orchestrator):
    decision = orchestrator.process_turn("Hello there!", user_id="u1")
    outcome = orchestrator.process_feedback("negative", decision)
    assert outcome.processed is True
    assert outcome.polarity == FeedbackPolarity.NEGATIVE
    assert outcome.memory_updated is True
    assert outcome.engagement_score == pytest.approx(0.9)
    assert orchestrator.get_session(decision.session_id).metrics.engagement_score == pytest.approx(0.9)
    assert "persona_adjustment" in outcome.improvements


def test_rated_feedback_updates_memory(orchestrator):
    decision = orchestrator.process_turn("Tell me about physics", user_id="u1")
    outcome = orchestrator.process_feedback({"rating": 5, "appreciated_feature": "examples"}, decision)
    assert outcome.polarity == FeedbackPolarity.POSITIVE
    assert outcome.memory_updated is True
    assert outcome.improvements == []
    profile = orchestrator.memory_registry.get_store("u1").profile
    assert profile.feedback_count == 1
    assert "examples" in profile.likes


def test_feedback_with_dict_context(orchestrator):
    decision = orchestrator.process_turn("Hello there!", user_id="u1")
    outcome = orchestrator.process_feedback("positive", decision.model_dump(mode="json"))
    assert outcome.processed is True
    assert outcome.details["persona"] == decision.persona.persona_id.value


def test_positive_feedback_builds_persona_preference(orchestrator):
    for _ in range(3):
        decision = orchestrator.process_turn("Hello there!", user_id="u1")
        orchestrator.process_feedback("positive", decision)
    assert orchestrator.analytics("u1")["preferred_persona"] == decision.persona.persona_id.value
    assert len(orchestrator.adaptive_store.feedback_history("u1")) == 3


@pytest.mark.parametrize("feedback", ["maybe", {"rating": 11}, 42])
def test_invalid_feedback_is_rejected(orchestrator, feedback):
    decision = orchestrator.process_turn("Hello there!", user_id="u1")
    assert orchestrator.process_feedback(feedback, decision).processed is False


def test_invalid_context_is_rejected(orchestrator):
    assert orchestrator.process_feedback("positive", {"session_id": "x"}).processed is False


def test_anonymous_feedback_only_moves_engagement(orchestrator):
    decision = orchestrator.process_turn("Hello there!")
    outcome = orchestrator.process_feedback("negative", decision)
    assert outcome.processed is True
    assert outcome.memory_updated is False


def test_guest_feedback_is_not_learned(orchestrator):
    for _ in range(3):
        decision = orchestrator.process_turn("Hello there!", user_id="guest")
        orchestrator.process_feedback("positive", decision)
    adaptive = orchestrator.adaptive_store
    assert adaptive.recent_personas("guest") == []
    assert adaptive.preferred_persona("guest") is None
    assert adaptive.feedback_history("guest") == []
    assert orchestrator.analytics("guest")["preferred_persona"] is None


def test_persona_preference_survives_restart(config, adapter):
    first = ConversationOrchestrator(config=config, persistence_adapter=adapter)
    for _ in range(3):
        decision = first.process_turn("let's brainstorm some ideas", user_id="u1")
        first.process_feedback("positive", decision)
    assert decision.persona.persona_id == PersonaId.SOCRATIC
    first.flush()

    restarted = ConversationOrchestrator(config=config, persistence_adapter=adapter)
    follow_up = restarted.process_turn("Hello there!", user_id="u1")
    assert follow_up.persona.preferred_persona == PersonaId.SOCRATIC
    assert follow_up.persona.is_blended is True
    assert restarted.analytics("u1")["preferred_persona"] == "socratic"


def test_wrong_persona_feedback_excludes_the_persona(orchestrator):
    decision = orchestrator.process_turn("Hello there!", user_id="u1")
    assert decision.persona.persona_id == PersonaId.EDUCATOR
    orchestrator.process_feedback({"rating": 1, "issue": "wrong_persona"}, decision)
    follow_up = orchestrator.process_turn("Hello again!", user_id="u1")
    assert follow_up.persona.persona_id != PersonaId.EDUCATOR
    assert follow_up.persona.reason == "excluded_persona"


# --- analytics / persistence ---


def test_analytics_for_known_user(orchestrator):
    orchestrator.process_turn("Hello there!", user_id="u1")
    orchestrator.process_turn(FRUSTRATED, user_id="u1")
    analytics = orchestrator.analytics("u1")
    assert analytics["session"]["message_count"] == 2
    assert analytics["persona_history"] == ["educator", "friendly"]
    assert analytics["profile"]["interaction_count"] == 2
    assert analytics["system"]["loaded_users"] == 1
    assert analytics["performance"]["cultural_alignment"] == "mixed"


def test_analytics_without_user(orchestrator):
    analytics = orchestrator.analytics()
    assert analytics["session"] is None
    assert analytics["profile"] is None
    assert "performance" not in analytics


def test_advanced_metrics(orchestrator, five_confused_turns):
    decision = orchestrator.process_turn("ok what next", five_confused_turns, user_id="u1")
    metrics = orchestrator.advanced_metrics(five_confused_turns, session_id=decision.session_id)
    assert metrics["is_stuck"] is True
    assert metrics["flow"] in {label.value for label in FlowLabel}
    assert metrics["engagement"]["current"] == decision.session_metrics.engagement_score
    assert set(metrics) == {
        "flow", "confidence", "learning_progression", "engagement",
        "cultural_alignment", "topic_progression", "is_stuck",
    }


def test_flush_persists_profiles(orchestrator, adapter):
    orchestrator.process_turn("Hello there!", user_id="u1")
    assert orchestrator.flush() == {"u1": True}
    assert "u1" in adapter
