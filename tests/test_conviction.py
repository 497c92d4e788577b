import pytest

from tutor_engine.config import EngineConfig
from tutor_engine.conviction.evaluator import ConvictionEvaluator, format_conviction_directive
from tutor_engine.models import ConvictionIntensity, ConvictionScenario, UserState


@pytest.fixture
def evaluator(config):
    return ConvictionEvaluator(config)


def test_memorizing_formulas_is_inefficient(evaluator):
    decision = evaluator.evaluate("I will just memorize all the formulas")
    assert decision.should_trigger is True
    assert decision.scenario == ConvictionScenario.INEFFICIENT_APPROACH
    assert decision.intensity == ConvictionIntensity.MEDIUM
    assert decision.tone == "supportive_but_firm"
    assert decision.confidence >= 0.6
    assert decision.alternative_approach


def test_response_has_all_five_slots(evaluator):
    decision = evaluator.evaluate("I will just memorize all the formulas")
    response = decision.response
    for slot in (response.acknowledge, response.alternative, response.reasoning,
                 response.persuasive_nudge, response.empower_choice):
        assert slot.strip()
    assert response.as_text().startswith(response.acknowledge)


def test_factual_error_is_firm(evaluator):
    decision = evaluator.evaluate("everyone knows 2+2=5")
    assert decision.scenario == ConvictionScenario.FACTUAL_ERROR
    assert decision.intensity == ConvictionIntensity.FIRM


def test_negative_self_talk_is_gentle(evaluator):
    decision = evaluator.evaluate("I think I'm so stupid")
    assert decision.scenario == ConvictionScenario.NEGATIVE_SELF_TALK
    assert decision.intensity == ConvictionIntensity.GENTLE


def test_frustrated_user_softens_intensity(evaluator, make_classification):
    classification = make_classification(state=UserState.FRUSTRATED)
    decision = evaluator.evaluate("I will just memorize all the formulas", classification=classification)
    assert decision.intensity == ConvictionIntensity.GENTLE
    assert decision.tone == "warm_supportive"


def test_confident_user_gets_firm_intensity(evaluator, make_classification):
    classification = make_classification(state=UserState.CONFIDENT)
    decision = evaluator.evaluate("I will just memorize all the formulas", classification=classification)
    assert decision.intensity == ConvictionIntensity.FIRM


def test_ordinary_question_does_not_trigger(evaluator):
    decision = evaluator.evaluate("What is photosynthesis?")
    assert decision.should_trigger is False
    assert decision.scenario is None
    assert decision.intensity == ConvictionIntensity.NONE
    assert decision.response is None


@pytest.mark.parametrize("message", ["", None, 42])
def test_invalid_message_does_not_trigger(evaluator, message):
    assert evaluator.evaluate(message).should_trigger is False


def test_repeated_confusion_in_history_suggests_better_alternative(evaluator, five_confused_turns):
    decision = evaluator.evaluate("ok what next", five_confused_turns)
    assert decision.should_trigger is True
    assert decision.scenario == ConvictionScenario.BETTER_ALTERNATIVE
    assert decision.intensity == ConvictionIntensity.GENTLE


def test_history_trigger_overrides_lexical_scenario(evaluator, five_confused_turns):
    decision = evaluator.evaluate("everyone knows 2+2=5", five_confused_turns)
    assert decision.scenario == ConvictionScenario.BETTER_ALTERNATIVE
    assert decision.confidence >= 0.9


def test_single_confused_turn_is_not_enough(evaluator):
    history = [{"role": "user", "text": "I'm confused"}, {"role": "assistant", "text": "Let's retry."}]
    assert evaluator.evaluate("ok what next", history).should_trigger is False


def test_repeated_failures_in_history(evaluator):
    history = [
        {"role": "user", "text": "my answer was wrong again"},
        {"role": "user", "text": "I failed the practice quiz"},
    ]
    decision = evaluator.evaluate("fine", history)
    assert decision.scenario == ConvictionScenario.BETTER_ALTERNATIVE
    assert decision.confidence == pytest.approx(0.65)


def test_threshold_is_configurable():
    evaluator = ConvictionEvaluator(EngineConfig(conviction_trigger_threshold=0.9))
    assert evaluator.evaluate("I will just memorize all the formulas").should_trigger is False


def test_response_is_deterministic(evaluator):
    first = evaluator.evaluate("I will just memorize all the formulas")
    second = evaluator.evaluate("I will just memorize all the formulas")
    assert first.response == second.response


def test_directive_rendering(evaluator):
    decision = evaluator.evaluate("I will just memorize all the formulas")
    directive = format_conviction_directive(decision, markers=["yaar"])
    assert "Scenario: inefficient_approach" in directive
    assert "Intensity: medium" in directive
    assert "yaar" in directive
    assert format_conviction_directive(evaluator.evaluate("What is photosynthesis?")) == ""


def test_roman_urdu_confusion_in_history(evaluator):
    history = [
        {"role": "user", "text": "mix up ho gaya"},
        {"role": "user", "text": "lost hun yaar"},
    ]
    decision = evaluator.evaluate("ok next", history)
    assert decision.scenario == ConvictionScenario.BETTER_ALTERNATIVE
    assert decision.confidence == pytest.approx(0.7)


def test_history_trigger_stays_gentle_for_confident_user(evaluator, five_confused_turns, make_classification):
    classification = make_classification(state=UserState.CONFIDENT)
    decision = evaluator.evaluate("ok what next", five_confused_turns, classification)
    assert decision.scenario == ConvictionScenario.BETTER_ALTERNATIVE
    assert decision.intensity == ConvictionIntensity.GENTLE


def test_stronger_trigger_is_at_least_as_confident(evaluator):
    strong = evaluator.evaluate("ratta maar ke pass ho jaunga")
    weak = evaluator.evaluate("I will learn only shortcuts")
    assert strong.scenario == weak.scenario == ConvictionScenario.INEFFICIENT_APPROACH
    assert strong.confidence == pytest.approx(0.85)
    assert weak.confidence == pytest.approx(0.7)
    assert strong.confidence >= weak.confidence
