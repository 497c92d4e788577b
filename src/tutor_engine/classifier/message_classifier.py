"""
Message classifier: intent, user state, sentiment, register, mood

Design:
- weighted PatternSet per intent, summed; confidence = 0.5 + 0.4 * score (cap 0.95)
- fallback chain when nothing scores: interrogative -> learning_focused,
  <= 3 tokens -> testing_system, otherwise vague_unclear
- user state picked by priority, first match wins
- optional personalization bias from the AdaptiveLearningStore
- pure for a fixed store state: no mutation of the inputs, never raises
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..config import EngineConfig, get_engine_config
from ..extractors.entity_extractor import extract_entities, extract_markers, vernacular_word_count
from ..models import (
    ClassificationMetadata,
    ClassificationResult,
    ContextualCues,
    CulturalContext,
    FormalityLevel,
    Intent,
    Message,
    MoodIntensity,
    MoodSignals,
    RepeatedPatterns,
    Sentiment,
    SilencePattern,
    StateTransition,
    UserState,
)
from ..patterns import best_label, find_words, first_label
from ..utils.validation import clamp, coerce_text, normalize_history, user_turns
from .adaptive_store import AdaptiveLearningStore
from .intent_patterns import (
    CASUAL_CATEGORY_PENALTY,
    CASUAL_THRESHOLD,
    CASUAL_WEIGHT,
    CASUAL_WORDS,
    COMPLETE_WORDS_BONUS,
    CONFUSION_PATTERNS,
    CONTINUITY_MARKERS,
    ENGAGED_CONFIDENCE,
    ENTHUSIASM_PATTERNS,
    EXCITED_CONFIDENCE,
    EXCITEMENT_PATTERNS,
    FORMAL_THRESHOLD,
    FORMAL_WEIGHT,
    FORMAL_WORDS,
    INTENT_PATTERNS,
    INTERROGATIVE,
    LEARNING_PHASE_PATTERNS,
    MICRO_PATTERNS,
    MIXED_REGISTER_PENALTY,
    MIXED_REGISTER_WORDS,
    MOOD_HIGH,
    MOOD_MEDIUM,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    QUICK_ROUTES,
    REPEATED_QUESTION_CONFIDENCE,
    SALUTATION_BONUS,
    SALUTATION_PATTERN,
    SILENCE_PROLONGED,
    SILENCE_RAPID,
    SILENCE_THOUGHTFUL,
    STATE_PATTERNS,
    STATE_TRANSITIONS,
    STATE_VALENCE,
    STUCK_PATTERNS,
    VALEDICTION_PATTERN,
)

INTENT_CONFIDENCE_CAP = 0.95
STATE_CONFIDENCE_CAP = 0.9
PERSONALIZATION_BOOST = 0.2
PERSONALIZED_CONFIDENCE_CAP = 0.9

NEGATIVE_STATES = frozenset({
    UserState.FRUSTRATED, UserState.CONFUSED, UserState.OVERWHELMED,
    UserState.ANXIOUS, UserState.DISAPPOINTED,
})


# --- pure text analyzers (also used by the flow analyzer and memory store) ---


def analyze_sentiment(text: str) -> Tuple[Sentiment, float]:
    """Polarity vote over whole words; confidence grows with the margin."""
    text = coerce_text(text)
    if not text:
        return Sentiment.NEUTRAL, 0.5
    positive = len(find_words(POSITIVE_WORDS, text))
    negative = len(find_words(NEGATIVE_WORDS, text))
    margin = abs(positive - negative)
    if positive > negative:
        return Sentiment.POSITIVE, min(0.9, 0.6 + 0.1 * margin)
    if negative > positive:
        return Sentiment.NEGATIVE, min(0.9, 0.6 + 0.1 * margin)
    return Sentiment.NEUTRAL, 0.5


def formality_score(text: str) -> float:
    """Positive leans formal, negative leans casual."""
    text = coerce_text(text)
    if not text:
        return 0.0
    score = FORMAL_WEIGHT * len(FORMAL_WORDS.findall(text))
    score -= CASUAL_WEIGHT * len(CASUAL_WORDS.findall(text))
    if "casual" in extract_markers(text):
        score -= CASUAL_CATEGORY_PENALTY
    if len(MIXED_REGISTER_WORDS.findall(text)) >= 2:
        score -= MIXED_REGISTER_PENALTY
    if SALUTATION_PATTERN.search(text) or VALEDICTION_PATTERN.search(text):
        score += SALUTATION_BONUS
    words = text.split()
    if len(text) > 50 and all(len(w.strip(".,!?;:")) > 2 for w in words):
        score += COMPLETE_WORDS_BONUS
    return score


def analyze_formality(text: str) -> Tuple[FormalityLevel, float]:
    score = formality_score(text)
    if score > FORMAL_THRESHOLD:
        return FormalityLevel.FORMAL, score
    if score < CASUAL_THRESHOLD:
        return FormalityLevel.CASUAL, score
    return FormalityLevel.NEUTRAL, score


def analyze_cultural_context(text: str) -> CulturalContext:
    text = coerce_text(text)
    markers = extract_markers(text)
    level, score = analyze_formality(text)
    count = vernacular_word_count(text)
    return CulturalContext(
        is_mixed_vernacular=count > 0,
        formality_level=level,
        formality_score=round(score, 3),
        markers=markers,
        vernacular_marker_count=count,
    )


def analyze_mood(text: str, silence: SilencePattern = SilencePattern.NONE) -> MoodSignals:
    """Micro-pattern mood score: sum of count * weight, capped at 1."""
    text = coerce_text(text)
    patterns: Dict[str, int] = {}
    total = 0.0
    for name, (regex, weight) in MICRO_PATTERNS.items():
        count = len(regex.findall(text)) if text else 0
        if count:
            patterns[name] = count
            total += count * weight
    score = min(1.0, total)
    if score > MOOD_HIGH:
        intensity = MoodIntensity.HIGH
    elif score > MOOD_MEDIUM:
        intensity = MoodIntensity.MEDIUM
    else:
        intensity = MoodIntensity.LOW
    return MoodSignals(patterns=patterns, mood_score=round(score, 3), intensity=intensity, silence_pattern=silence)


def silence_pattern(previous: Optional[datetime], current: Optional[datetime]) -> SilencePattern:
    if previous is None or current is None:
        return SilencePattern.NONE
    try:
        gap = (current - previous).total_seconds()
    except TypeError:
        # naive vs aware timestamps
        return SilencePattern.NONE
    if gap > SILENCE_PROLONGED:
        return SilencePattern.PROLONGED
    if gap > SILENCE_THOUGHTFUL:
        return SilencePattern.THOUGHTFUL
    if gap < SILENCE_RAPID:
        return SilencePattern.RAPID_FIRE
    return SilencePattern.NORMAL


def learning_phase(text: str) -> Optional[str]:
    """confusion / application / understanding, or None."""
    hit = first_label(LEARNING_PHASE_PATTERNS, coerce_text(text))
    return hit.label if hit else None


def is_confused_turn(message: Message) -> bool:
    """Classifier-assigned state when present, otherwise the shared confusion patterns."""
    if message.user_state is not None:
        return message.user_state == UserState.CONFUSED
    return CONFUSION_PATTERNS.any(message.text)


def quick_classify(text) -> Intent:
    """Cheap routing without history or scoring."""
    text = coerce_text(text)
    if not text:
        return Intent.TESTING_SYSTEM
    for intent, regex in QUICK_ROUTES:
        if regex.search(text):
            return intent
    return Intent.LEARNING_FOCUSED


def _content_words(text: str) -> set:
    return {w.strip(".,!?;:'\"()").lower() for w in text.split() if len(w.strip(".,!?;:'\"()")) > 3}


class MessageClassifier:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        adaptive_store: Optional[AdaptiveLearningStore] = None,
    ):
        self._config = config or get_engine_config()
        self._adaptive = adaptive_store

    # --- public ---

    def classify(
        self,
        message,
        history: Optional[Sequence] = None,
        user_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ClassificationResult:
        """Classify one user message against its recent history.

        Args:
            message: raw message text; anything that is not a non-empty string
                yields the fixed low-confidence default
            history: prior turns (Message objects or dicts), oldest first
            user_id: enables the personalization bias when an adaptive store is attached
            timestamp: when the message was sent, for silence analysis

        Returns:
            ClassificationResult
        """
        text = coerce_text(message)
        if not text:
            return self.default_result()

        window = normalize_history(history, window=self._config.classifier_window)

        intent, intent_conf, intent_indicators = self.classify_intent(text)
        personalized = False
        biased = self._personalize(user_id, intent_conf)
        if biased is not None:
            intent, intent_conf = biased
            intent_indicators = intent_indicators + ["personalized_bias"]
            personalized = True

        sentiment, sentiment_conf = analyze_sentiment(text)
        state, state_conf, state_indicators = self.detect_user_state(text, window, sentiment)

        previous_ts = window[-1].timestamp if window else None
        mood = analyze_mood(text, silence_pattern(previous_ts, timestamp))

        result = ClassificationResult(
            intent=intent,
            intent_confidence=clamp(intent_conf),
            intent_indicators=intent_indicators,
            user_state=state,
            state_confidence=clamp(state_conf),
            state_indicators=state_indicators,
            sentiment=sentiment,
            sentiment_confidence=clamp(sentiment_conf),
            cultural_context=analyze_cultural_context(text),
            entities=extract_entities(text),
            mood=mood,
            state_transition=self.analyze_state_transition(state, window),
            contextual_cues=self.contextual_cues(text, state, window),
            repeated_patterns=self.detect_repeated_patterns(text, state, window),
            metadata=ClassificationMetadata(
                message_length=len(text),
                word_count=len(text.split()),
                has_question=bool(INTERROGATIVE.search(text)),
                context_window_size=len(window),
            ),
            personalized=personalized,
        )
        logger.debug(
            f"[Classifier] intent={result.intent.value}({result.intent_confidence:.2f}) "
            f"state={result.user_state.value} sentiment={result.sentiment.value}"
        )
        return result

    @staticmethod
    def default_result() -> ClassificationResult:
        return ClassificationResult(
            intent=Intent.TESTING_SYSTEM,
            intent_confidence=0.3,
            intent_indicators=["empty_or_invalid_message"],
            user_state=UserState.CURIOUS,
            state_confidence=0.3,
            sentiment=Sentiment.NEUTRAL,
            sentiment_confidence=0.5,
        )

    def classify_intent(self, text: str) -> Tuple[Intent, float, List[str]]:
        best = best_label(INTENT_PATTERNS, text)
        if best is not None:
            confidence = min(INTENT_CONFIDENCE_CAP, 0.5 + 0.4 * best.score)
            return best.label, confidence, [m.text for m in best.matches]

        if INTERROGATIVE.search(text):
            return Intent.LEARNING_FOCUSED, 0.6, ["interrogative_fallback"]
        if len(text.split()) <= 3:
            return Intent.TESTING_SYSTEM, 0.7, ["short_message_fallback"]
        return Intent.VAGUE_UNCLEAR, 0.5, ["no_pattern_fallback"]

    def detect_user_state(
        self,
        text: str,
        history: List[Message],
        sentiment: Sentiment,
    ) -> Tuple[UserState, float, List[str]]:
        hit = first_label(STATE_PATTERNS, text)
        if hit is not None:
            confidence = min(STATE_CONFIDENCE_CAP, 0.5 + 0.4 * hit.score)
            return hit.label, confidence, [m.text for m in hit.matches]

        if EXCITEMENT_PATTERNS.any(text):
            return UserState.EXCITED, EXCITED_CONFIDENCE, ["excitement_markers"]
        if ENTHUSIASM_PATTERNS.any(text):
            return UserState.ENGAGED, ENGAGED_CONFIDENCE, ["enthusiasm_markers"]

        recent = user_turns(history)[-3:]
        if sum(1 for m in recent if "?" in m.text) >= 2:
            return UserState.CONFUSED, REPEATED_QUESTION_CONFIDENCE, ["repeated_questions"]

        if sentiment == Sentiment.POSITIVE:
            return UserState.CONFIDENT, 0.6, ["positive_sentiment"]
        if sentiment == Sentiment.NEGATIVE:
            return UserState.FRUSTRATED, 0.6, ["negative_sentiment"]
        return UserState.CURIOUS, 0.5, ["default_state"]

    def analyze_state_transition(self, state: UserState, history: List[Message]) -> StateTransition:
        previous = next(
            (m.user_state for m in reversed(user_turns(history)) if m.user_state is not None),
            None,
        )
        if previous is None or previous == state:
            return StateTransition(from_state=previous, to_state=state)
        return StateTransition(
            has_transition=True,
            from_state=previous,
            to_state=state,
            transition_type=STATE_TRANSITIONS.get((previous, state), "state_change"),
        )

    def contextual_cues(self, text: str, state: UserState, history: List[Message]) -> ContextualCues:
        previous_users = user_turns(history)
        last_text = previous_users[-1].text if previous_users else ""

        related = False
        if last_text:
            shared_subjects = set(extract_entities(text).subjects) & set(extract_entities(last_text).subjects)
            related = bool(shared_subjects) or len(_content_words(text) & _content_words(last_text)) >= 2

        progression = None
        previous_state = next((m.user_state for m in reversed(previous_users) if m.user_state), None)
        if previous_state is not None:
            delta = STATE_VALENCE.get(state, 0) - STATE_VALENCE.get(previous_state, 0)
            progression = "improving" if delta > 0 else "declining" if delta < 0 else "stable"

        indicators = [label for label, patterns in LEARNING_PHASE_PATTERNS if patterns.any(text)]
        return ContextualCues(
            has_continuity=bool(history) and bool(CONTINUITY_MARKERS.match(text)),
            related_to_previous=related,
            emotional_progression=progression,
            learning_phase=indicators[0] if indicators else None,
            learning_indicators=indicators,
        )

    def detect_repeated_patterns(self, text: str, state: UserState, history: List[Message]) -> RepeatedPatterns:
        previous_users = user_turns(history)
        words = _content_words(text)
        subjects = set(extract_entities(text).subjects)
        is_question = "?" in text

        repeated_questions = repeated_topics = repeated_emotions = 0
        for message in previous_users:
            other = _content_words(message.text)
            if is_question and "?" in message.text and words and other:
                if len(words & other) / len(words | other) >= 0.5:
                    repeated_questions += 1
            if subjects and subjects & set(extract_entities(message.text).subjects):
                repeated_topics += 1
            if message.user_state is not None and message.user_state == state and state in NEGATIVE_STATES:
                repeated_emotions += 1

        stuck = len(STUCK_PATTERNS.matches(text))
        is_stuck = stuck > 0 or (repeated_questions >= 2 and repeated_emotions >= 2)
        return RepeatedPatterns(
            repeated_questions=repeated_questions,
            repeated_topics=repeated_topics,
            repeated_emotions=repeated_emotions,
            stuck_indicators=stuck,
            is_stuck=is_stuck,
            needs_new_approach=is_stuck or repeated_topics >= 3 or repeated_emotions >= 3,
        )

    # --- internals ---

    def _personalize(self, user_id: Optional[str], base_confidence: float) -> Optional[Tuple[Intent, float]]:
        if self._adaptive is None or not user_id:
            return None
        if base_confidence >= self._config.personalization_confidence_ceiling:
            return None
        top = self._adaptive.top_intent(user_id)
        if top is None or top[1] < self._config.personalization_min_samples:
            return None
        intent, _ = top
        return intent, min(PERSONALIZED_CONFIDENCE_CAP, base_confidence + PERSONALIZATION_BOOST)
