"""
Persona selector: rule pick, lexical override, state multiplier, feedback blending

Design:
- base rules keyed on intent / user state / register, first match wins
- lexical affinity above persona_override_threshold replaces the rule pick
- final confidence = clamp(raw * state multiplier); activation at
  persona_activation_threshold, otherwise the pick is reported but not enforced
- blending when raw confidence < persona_blend_confidence_ceiling and the user
  has a net-positive preferred persona (>= persona_min_feedback_samples events)
- the stored profile backs the in-memory preference across restarts; personas
  it excludes are never picked or blended in
"""

import re
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from ..classifier.adaptive_store import AdaptiveLearningStore
from ..config import EngineConfig, get_engine_config
from ..models import (
    BlendedPersona,
    ClassificationResult,
    FeedbackPolarity,
    FormalityLevel,
    Intent,
    Message,
    PersonaDecision,
    PersonaId,
    PersonaIntensity,
    SimplePersona,
    UserProfile,
    UserState,
)
from ..utils.validation import clamp, coerce_text, normalize_history
from .catalog import persona_affinity

URGENCY_WORDS = re.compile(r"\b(?:urgent|asap|quickly|fast|deadline|hurry|immediate(?:ly)?|jaldi)\b", re.IGNORECASE)
COMPLEXITY_WORDS = re.compile(
    r"\b(?:complex|advanced|sophisticated|detailed|comprehensive|in-depth|thorough)\b", re.IGNORECASE
)
BEGINNER_WORDS = re.compile(r"\b(?:beginner|new\s+to|starting\s+out|first\s+time|basics)\b", re.IGNORECASE)

HEIGHTENED_STATES = frozenset({UserState.FRUSTRATED, UserState.CONFUSED})
SETTLED_STATES = frozenset({UserState.CONFIDENT, UserState.ENGAGED})
HEIGHTENED_MULTIPLIER = 1.3
SETTLED_MULTIPLIER = 0.8

FAMILIARITY_HIGH_TURNS = 10


def detect_urgency(text: str) -> str:
    return "high" if URGENCY_WORDS.search(text or "") else "low"


def detect_complexity(text: str) -> str:
    return "high" if COMPLEXITY_WORDS.search(text or "") else "medium"


def detect_familiarity(text: str, history: Sequence[Message]) -> str:
    if BEGINNER_WORDS.search(text or ""):
        return "low"
    if len(history) > FAMILIARITY_HIGH_TURNS:
        return "high"
    return "medium"


def intensity_multiplier(state: UserState) -> float:
    if state in HEIGHTENED_STATES:
        return HEIGHTENED_MULTIPLIER
    if state in SETTLED_STATES:
        return SETTLED_MULTIPLIER
    return 1.0


def persona_intensity(confidence: float) -> PersonaIntensity:
    if confidence > 0.9:
        return PersonaIntensity.HIGH
    if confidence > 0.7:
        return PersonaIntensity.MEDIUM
    return PersonaIntensity.LOW


def profile_preference(profile: Optional[UserProfile], min_samples: int) -> Optional[PersonaId]:
    """Best persisted persona with enough feedback; excluded personas never qualify."""
    if profile is None:
        return None
    for persona in profile.preferred_personas:
        if profile.persona_scores[persona].total >= min_samples:
            return persona
    return None


def replace_excluded(persona: PersonaId, excluded: Sequence[PersonaId], preferred: Optional[PersonaId]) -> PersonaId:
    if persona not in excluded:
        return persona
    if preferred is not None:
        return preferred
    if PersonaId.EDUCATOR not in excluded:
        return PersonaId.EDUCATOR
    return next((p for p in PersonaId if p not in excluded), persona)


def rule_pick(
    classification: ClassificationResult,
    urgency: str,
    complexity: str,
    familiarity: str,
) -> Tuple[PersonaId, float, str]:
    intent = classification.intent
    state = classification.user_state

    if intent == Intent.FRUSTRATED_SEEKING_HELP or state in HEIGHTENED_STATES:
        return PersonaId.FRIENDLY, 0.9, "support_needed"
    if intent == Intent.BRAINSTORMING_COLLABORATIVE:
        return PersonaId.SOCRATIC, 0.8, "collaborative_exploration"
    if intent == Intent.DIRECT_TASK_ORIENTED:
        return PersonaId.CONCISE, (0.85 if urgency == "high" else 0.7), "direct_task"
    if intent == Intent.EXPLORATORY_PLAYFUL:
        return PersonaId.FRIENDLY, 0.7, "playful_exploration"
    if intent == Intent.LEARNING_FOCUSED:
        if complexity == "high":
            return PersonaId.DETAILED, 0.75, "complex_learning"
        return PersonaId.EDUCATOR, 0.6, "learning"
    if classification.cultural_context.formality_level == FormalityLevel.FORMAL or familiarity == "low":
        return PersonaId.FORMAL, 0.65, "formal_register"
    return PersonaId.EDUCATOR, 0.5, "default"


class PersonaSelector:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        adaptive_store: Optional[AdaptiveLearningStore] = None,
    ):
        self._config = config or get_engine_config()
        self._adaptive = adaptive_store or AdaptiveLearningStore(self._config)

    @property
    def adaptive_store(self) -> AdaptiveLearningStore:
        return self._adaptive

    def select(
        self,
        message,
        classification: ClassificationResult,
        history: Optional[Sequence] = None,
        user_id: Optional[str] = None,
        profile: Optional[UserProfile] = None,
    ) -> PersonaDecision:
        """Pick the persona for one turn.

        ``profile`` is the user's stored preference profile; its persona
        feedback stands in when the in-memory store has none for the user,
        and its excluded personas are skipped.
        """
        text = coerce_text(message)
        window = normalize_history(history, window=self._config.history_max)

        persona, raw, reason = rule_pick(
            classification,
            urgency=detect_urgency(text),
            complexity=detect_complexity(text),
            familiarity=detect_familiarity(text, window),
        )

        scores = persona_affinity(text)
        top_persona = max(PersonaId, key=lambda p: scores[p])
        if scores[top_persona] > self._config.persona_override_threshold:
            persona = top_persona
            raw = max(raw, min(scores[top_persona] / 2, 1.0))
            reason = "lexical_override"

        multiplier = intensity_multiplier(classification.user_state)
        final = clamp(raw * multiplier)

        preferred = self.preferred_persona(user_id, profile)
        excluded = profile.excluded_personas if profile is not None else []
        if persona in excluded:
            persona = replace_excluded(persona, excluded, preferred)
            reason = "excluded_persona"
        if preferred is not None and preferred != persona and raw < self._config.persona_blend_confidence_ceiling:
            chosen = BlendedPersona(primary=persona, secondary=preferred, ratio=clamp(raw))
        else:
            chosen = SimplePersona(id=persona)

        decision = PersonaDecision(
            persona=chosen,
            confidence=final,
            raw_confidence=clamp(raw),
            intensity_multiplier=multiplier,
            intensity=persona_intensity(final),
            should_activate=final >= self._config.persona_activation_threshold,
            pattern_scores={p.value: s for p, s in scores.items() if s > 0},
            preferred_persona=preferred,
            reason=reason,
        )
        logger.debug(
            f"[Persona] {persona.value} raw={raw:.2f} final={final:.2f} "
            f"activate={decision.should_activate} blended={decision.is_blended}"
        )
        return decision

    def record_feedback(self, user_id: Optional[str], persona: PersonaId, polarity: FeedbackPolarity):
        self._adaptive.record_persona_feedback(user_id, persona, polarity)

    def preferred_persona(self, user_id: Optional[str], profile: Optional[UserProfile] = None) -> Optional[PersonaId]:
        min_samples = self._config.persona_min_feedback_samples
        preferred = self._adaptive.preferred_persona(user_id, min_samples)
        if preferred is None:
            return profile_preference(profile, min_samples)
        if profile is not None and preferred in profile.excluded_personas:
            return profile_preference(profile, min_samples)
        return preferred

    def recent_personas(self, user_id: Optional[str]) -> List[PersonaId]:
        return self._adaptive.recent_personas(user_id)
