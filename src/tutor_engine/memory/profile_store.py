"""
Per-user preference & memory store

Design:
- formality preference = majority of per-message votes (casual vs formal markers)
- length preference and vernacular density from exponentially smoothed
  message statistics (alpha = preference_smoothing)
- bounded interaction records / event log / feedback log
- feedback with rating < 3 nudges the flagged stylistic choice the other way
  and lowers confidence in it; rating > 3 reinforces topics and persona
- persistence through an injected PersistenceAdapter, explicit flush()
"""

import json
import re
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from ..classifier.intent_patterns import CASUAL_WORDS, FORMAL_WORDS
from ..config import EngineConfig, get_engine_config
from ..extractors.entity_extractor import extract_entities, extract_markers, vernacular_word_count
from ..models import (
    ClassificationResult,
    FeedbackEvent,
    FeedbackIssue,
    FeedbackPolarity,
    FeedbackRecord,
    FormalityLevel,
    Intent,
    InteractionRecord,
    MarkerDensity,
    PersonaFeedbackCounter,
    PersonaId,
    PersonalizedRecommendations,
    ProfileEvent,
    ResponseLength,
    UserProfile,
    UserState,
)
from ..utils.validation import clamp, coerce_text
from .persistence import PersistenceAdapter

CONCISE_BELOW = 20
DETAILED_ABOVE = 100
LENGTH_ANCHORS = {ResponseLength.CONCISE: 15.0, ResponseLength.MEDIUM: 60.0, ResponseLength.DETAILED: 120.0}
DENSITY_HIGH = 0.3
DENSITY_MEDIUM = 0.1
CONFIDENCE_DECAY = 0.8
MAX_LIKES = 20
MAX_PROACTIVE_QUESTIONS = 3

NOTABLE_INTENTS = frozenset({
    Intent.ACHIEVEMENT_ANNOUNCEMENT, Intent.EVENT_SHARING,
    Intent.PERSONAL_UPDATE, Intent.CHALLENGE_DESCRIPTION,
})

LIKE_PATTERN = re.compile(
    r"\bi\s+(?:really\s+)?(?:like|love|enjoy|prefer)\s+([a-z][a-z\s']{1,40}?)(?=[.,!?]|$|\s+(?:and|but|because)\b)",
    re.IGNORECASE,
)
DISLIKE_PATTERN = re.compile(
    r"\bi\s+(?:really\s+)?(?:hate|dislike|can'?t\s+stand)\s+([a-z][a-z\s']{1,40}?)(?=[.,!?]|$|\s+(?:and|but|because)\b)",
    re.IGNORECASE,
)

_FORMALITY_ORDER = [FormalityLevel.CASUAL, FormalityLevel.NEUTRAL, FormalityLevel.FORMAL]
_LENGTH_ORDER = [ResponseLength.CONCISE, ResponseLength.MEDIUM, ResponseLength.DETAILED]

CASUAL_FOLLOW_UPS = [
    "Yaar, {topic} mein aur kya explore karna chahoge?",
    "{topic} ka koi naya problem try karein?",
    "Pichli baar {topic} discuss kiya tha, ab kaisa chal raha hai?",
]
FORMAL_FOLLOW_UPS = [
    "Would you like to explore {topic} further?",
    "Shall we attempt a new {topic} problem together?",
    "How is your progress with {topic} coming along?",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _step(order: list, current, direction: int):
    index = order.index(current) + direction
    return order[max(0, min(len(order) - 1, index))]


class InteractionMetadata(BaseModel):
    intent: Optional[Intent] = None
    user_state: Optional[UserState] = None
    persona: Optional[PersonaId] = None
    topics: List[str] = Field(default_factory=list)

    @classmethod
    def from_classification(
        cls, classification: ClassificationResult, persona: Optional[PersonaId] = None
    ) -> "InteractionMetadata":
        return cls(
            intent=classification.intent,
            user_state=classification.user_state,
            persona=persona,
            topics=list(classification.entities.subjects),
        )


class PreferenceMemoryStore:
    def __init__(
        self,
        user_id: str,
        adapter: Optional[PersistenceAdapter] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.user_id = user_id
        self._adapter = adapter
        self._config = config or get_engine_config()
        self._profile = UserProfile(user_id=user_id)

    @property
    def profile(self) -> UserProfile:
        """Deep copy; mutate through the store methods."""
        return self._profile.model_copy(deep=True)

    # --- interactions ---

    def record_interaction(
        self,
        message,
        response: str = "",
        metadata: Optional[Union[InteractionMetadata, Dict[str, Any]]] = None,
    ) -> Optional[str]:
        """Update the profile from one user message; returns the interaction id.

        Returns None (and changes nothing) for empty or non-string messages.
        """
        text = coerce_text(message)
        if not text:
            return None
        if isinstance(metadata, dict):
            try:
                metadata = InteractionMetadata.model_validate(metadata)
            except ValidationError:
                logger.warning(f"[Memory] Ignoring malformed interaction metadata for {self.user_id}")
                metadata = None
        metadata = metadata or InteractionMetadata()

        profile = self._profile
        alpha = self._config.preference_smoothing
        entities = extract_entities(text)
        topics = list(dict.fromkeys(list(metadata.topics) + entities.subjects))

        vote = self._formality_vote(text)
        profile.formality_votes[vote] = profile.formality_votes.get(vote, 0.0) + 1.0
        self._recompute_formality()

        if profile.interaction_count == 0:
            profile.average_message_length = float(len(text))
        else:
            profile.average_message_length += alpha * (len(text) - profile.average_message_length)
        profile.response_length = self._length_for(profile.average_message_length)

        words = max(1, len(text.split()))
        ratio = min(1.0, vernacular_word_count(text) / words)
        profile.vernacular_ratio = clamp(profile.vernacular_ratio + alpha * (ratio - profile.vernacular_ratio))
        profile.marker_density = self._density_for(profile.vernacular_ratio)

        for topic in topics:
            profile.topics[topic] = profile.topics.get(topic, 0) + 1
        for category in ("names", "places", "institutions", "events"):
            for value in getattr(entities, category):
                bucket = profile.entities.setdefault(category, {})
                bucket[value] = bucket.get(value, 0) + 1
        if metadata.intent is not None:
            profile.intents[metadata.intent.value] = profile.intents.get(metadata.intent.value, 0) + 1
        if metadata.user_state is not None:
            key = metadata.user_state.value
            profile.emotional_histogram[key] = profile.emotional_histogram.get(key, 0) + 1

        self._capture_likes(text)
        self._log_events(text, metadata, entities.events)

        interaction_id = uuid.uuid4().hex
        profile.interactions.append(
            InteractionRecord(
                interaction_id=interaction_id,
                message=text,
                response=coerce_text(response),
                intent=metadata.intent,
                user_state=metadata.user_state,
                persona=metadata.persona,
                formality=vote,
                topics=topics,
            )
        )
        overflow = len(profile.interactions) - self._config.interaction_record_limit
        if overflow > 0:
            del profile.interactions[:overflow]

        profile.interaction_count += 1
        profile.updated_at = _utcnow()
        return interaction_id

    def attach_response(self, interaction_id: str, response: str) -> bool:
        record = self._find(interaction_id)
        if record is None:
            return False
        record.response = coerce_text(response)
        return True

    # --- feedback ---

    def record_feedback(self, interaction_id: Optional[str], feedback: Union[FeedbackEvent, Dict[str, Any]]) -> bool:
        if isinstance(feedback, dict):
            try:
                feedback = FeedbackEvent.model_validate(feedback)
            except ValidationError as e:
                logger.warning(f"[Memory] Rejected feedback for {self.user_id}: {e.error_count()} errors")
                return False
        interaction_id = interaction_id or feedback.interaction_id
        record = self._find(interaction_id)
        if record is None:
            logger.warning(f"[Memory] Feedback for unknown interaction {interaction_id} ({self.user_id})")
            return False

        profile = self._profile
        polarity = feedback.resolved_polarity

        if feedback.rating is not None:
            normalized = (feedback.rating - 1) / 4.0
            weight = self._config.preference_smoothing * feedback.importance
            profile.satisfaction_score = clamp(profile.satisfaction_score + weight * (normalized - profile.satisfaction_score))
            record.rating = feedback.rating

        if feedback.issue is not None and (feedback.rating is None or feedback.rating < 3):
            self._apply_issue(feedback.issue, record)
        elif polarity == FeedbackPolarity.NEGATIVE and record.persona is not None:
            self._persona_counter(record.persona).negative += 1

        if feedback.rating is not None:
            liked = feedback.rating > 3
        else:
            liked = polarity == FeedbackPolarity.POSITIVE
        if liked:
            self._reinforce(record, feedback.appreciated_feature)

        profile.feedback_log.append(
            FeedbackRecord(
                interaction_id=record.interaction_id,
                rating=feedback.rating,
                polarity=polarity,
                issue=feedback.issue,
            )
        )
        overflow = len(profile.feedback_log) - self._config.feedback_log_limit
        if overflow > 0:
            del profile.feedback_log[:overflow]
        profile.feedback_count += 1
        profile.updated_at = _utcnow()
        return True

    def _apply_issue(self, issue: FeedbackIssue, record: InteractionRecord):
        profile = self._profile
        nudge = self._config.feedback_nudge_weight
        if issue in (FeedbackIssue.TOO_FORMAL, FeedbackIssue.TOO_CASUAL):
            direction = -1 if issue == FeedbackIssue.TOO_FORMAL else 1
            flagged = profile.preferred_formality
            target = _step(_FORMALITY_ORDER, flagged, direction)
            if target == flagged:
                target = _step(_FORMALITY_ORDER, record.formality, direction)
            source = FormalityLevel.FORMAL if direction < 0 else FormalityLevel.CASUAL
            profile.formality_votes[source] = max(0.0, profile.formality_votes.get(source, 0.0) - nudge)
            profile.formality_votes[target] = profile.formality_votes.get(target, 0.0) + nudge
            profile.preferred_formality = target
            profile.formality_confidence = clamp(profile.formality_confidence * CONFIDENCE_DECAY)
            if issue == FeedbackIssue.TOO_FORMAL:
                profile.marker_density = _step([MarkerDensity.LOW, MarkerDensity.MEDIUM, MarkerDensity.HIGH],
                                               profile.marker_density, 1)
        elif issue in (FeedbackIssue.TOO_LONG, FeedbackIssue.TOO_SHORT):
            direction = -1 if issue == FeedbackIssue.TOO_LONG else 1
            profile.response_length = _step(_LENGTH_ORDER, profile.response_length, direction)
            profile.average_message_length = LENGTH_ANCHORS[profile.response_length]
            profile.response_length_confidence = clamp(profile.response_length_confidence * CONFIDENCE_DECAY)
        elif issue == FeedbackIssue.WRONG_PERSONA and record.persona is not None:
            self._persona_counter(record.persona).negative += 1
            if record.persona not in profile.excluded_personas:
                profile.excluded_personas.append(record.persona)
        self._log_event("feedback_issue", issue.value)

    def _reinforce(self, record: InteractionRecord, appreciated: Optional[str]):
        profile = self._profile
        for topic in record.topics:
            profile.topics[topic] = profile.topics.get(topic, 0) + 1
        if appreciated:
            feature = appreciated.strip().lower()
            profile.topics[feature] = profile.topics.get(feature, 0) + 1
            self._remember(profile.likes, feature)
        if record.persona is not None:
            self._persona_counter(record.persona).positive += 1
            if record.persona in profile.excluded_personas:
                profile.excluded_personas.remove(record.persona)
        profile.formality_confidence = clamp(profile.formality_confidence + 0.05)
        profile.response_length_confidence = clamp(profile.response_length_confidence + 0.05)

    def _persona_counter(self, persona: PersonaId) -> PersonaFeedbackCounter:
        return self._profile.persona_scores.setdefault(persona, PersonaFeedbackCounter())

    # --- recommendations / analytics ---

    def get_personalized_recommendations(
        self, context: Optional[ClassificationResult] = None
    ) -> PersonalizedRecommendations:
        profile = self._profile
        persona: Optional[PersonaId] = None
        if context is not None and context.user_state in (UserState.CONFUSED, UserState.FRUSTRATED):
            persona = PersonaId.FRIENDLY
        elif context is not None and context.intent == Intent.BRAINSTORMING_COLLABORATIVE:
            persona = PersonaId.SOCRATIC
        elif profile.preferred_personas:
            persona = profile.preferred_personas[0]

        return PersonalizedRecommendations(
            persona=persona,
            formality=profile.preferred_formality,
            response_length=profile.response_length,
            marker_density=profile.marker_density,
            proactive_questions=self._proactive_questions(),
            based_on_interactions=profile.interaction_count,
        )

    def _proactive_questions(self) -> List[str]:
        recent_topics: List[str] = []
        for record in reversed(self._profile.interactions):
            for topic in record.topics:
                if topic not in recent_topics:
                    recent_topics.append(topic)
        templates = CASUAL_FOLLOW_UPS if self._profile.preferred_formality == FormalityLevel.CASUAL else FORMAL_FOLLOW_UPS
        return [
            templates[i % len(templates)].format(topic=topic)
            for i, topic in enumerate(recent_topics[:MAX_PROACTIVE_QUESTIONS])
        ]

    def get_analytics(self) -> Dict[str, Any]:
        profile = self._profile
        top_topics = Counter(profile.topics).most_common(5)
        return {
            "user_id": self.user_id,
            "interaction_count": profile.interaction_count,
            "feedback_count": profile.feedback_count,
            "satisfaction_score": round(profile.satisfaction_score, 3),
            "preferred_formality": profile.preferred_formality.value,
            "formality_confidence": round(profile.formality_confidence, 3),
            "response_length": profile.response_length.value,
            "marker_density": profile.marker_density.value,
            "vernacular_ratio": round(profile.vernacular_ratio, 3),
            "top_topics": [topic for topic, _ in top_topics],
            "emotional_histogram": dict(profile.emotional_histogram),
            "preferred_personas": [p.value for p in profile.preferred_personas],
            "likes": list(profile.likes),
            "dislikes": list(profile.dislikes),
            "recent_events": [e.kind for e in profile.event_log],
        }

    # --- lifecycle ---

    def export_profile(self) -> Dict[str, Any]:
        return self._profile.model_dump(mode="json")

    def import_profile(self, data: Union[str, Dict[str, Any]]) -> bool:
        """Replace the profile; corrupted data resets to defaults and returns False."""
        try:
            if isinstance(data, str):
                data = json.loads(data)
            if not isinstance(data, dict):
                raise ValueError("profile payload must be an object")
            profile = UserProfile.model_validate({**data, "user_id": self.user_id})
        except (ValueError, TypeError) as e:
            # pydantic ValidationError and json.JSONDecodeError are ValueErrors
            logger.warning(f"[Memory] Corrupted profile import for {self.user_id}, using defaults: {type(e).__name__}")
            self.reset()
            return False
        self._profile = profile
        logger.info(f"[Memory] Imported profile for {self.user_id} ({profile.interaction_count} interactions)")
        return True

    def reset(self):
        self._profile = UserProfile(user_id=self.user_id)
        logger.info(f"[Memory] Reset profile for {self.user_id}")

    def load(self) -> bool:
        """Load from the adapter; any failure leaves defaults and returns False."""
        if self._adapter is None:
            return False
        try:
            data = self._adapter.load(self.user_id)
        except Exception as e:
            logger.warning(f"[Memory] Load failed for {self.user_id}: {e}")
            return False
        if data is None:
            return False
        return self.import_profile(data)

    def flush(self) -> bool:
        """Save through the adapter. A failed save is not rolled back in memory."""
        if self._adapter is None:
            return False
        try:
            self._adapter.save(self.user_id, self.export_profile())
        except Exception as e:
            logger.warning(f"[Memory] Save failed for {self.user_id}: {e}")
            return False
        return True

    # --- internals ---

    def _find(self, interaction_id: Optional[str]) -> Optional[InteractionRecord]:
        if not interaction_id:
            return None
        return next((r for r in self._profile.interactions if r.interaction_id == interaction_id), None)

    @staticmethod
    def _formality_vote(text: str) -> FormalityLevel:
        casual = len(CASUAL_WORDS.findall(text)) + len(extract_markers(text).get("casual", []))
        formal = len(FORMAL_WORDS.findall(text))
        if casual > formal:
            return FormalityLevel.CASUAL
        if formal > casual:
            return FormalityLevel.FORMAL
        return FormalityLevel.NEUTRAL

    def _recompute_formality(self):
        profile = self._profile
        votes = profile.formality_votes
        total = sum(votes.values())
        if total <= 0:
            return
        for level in (FormalityLevel.CASUAL, FormalityLevel.FORMAL):
            if votes.get(level, 0.0) > total / 2:
                profile.preferred_formality = level
                break
        else:
            profile.preferred_formality = FormalityLevel.NEUTRAL
        profile.formality_confidence = clamp(max(votes.values()) / total)

    @staticmethod
    def _length_for(average: float) -> ResponseLength:
        if average > DETAILED_ABOVE:
            return ResponseLength.DETAILED
        if average < CONCISE_BELOW:
            return ResponseLength.CONCISE
        return ResponseLength.MEDIUM

    @staticmethod
    def _density_for(ratio: float) -> MarkerDensity:
        if ratio > DENSITY_HIGH:
            return MarkerDensity.HIGH
        if ratio > DENSITY_MEDIUM:
            return MarkerDensity.MEDIUM
        return MarkerDensity.LOW

    def _capture_likes(self, text: str):
        for m in LIKE_PATTERN.finditer(text):
            self._remember(self._profile.likes, m.group(1))
        for m in DISLIKE_PATTERN.finditer(text):
            self._remember(self._profile.dislikes, m.group(1))

    @staticmethod
    def _remember(bucket: List[str], value: str):
        value = " ".join(value.lower().split())
        if not value:
            return
        if value in bucket:
            bucket.remove(value)
        bucket.append(value)
        if len(bucket) > MAX_LIKES:
            del bucket[: len(bucket) - MAX_LIKES]

    def _log_events(self, text: str, metadata: InteractionMetadata, events: List[str]):
        if metadata.intent in NOTABLE_INTENTS:
            self._log_event(metadata.intent.value, text[:80])
        for event in events:
            self._log_event("event_mention", event)

    def _log_event(self, kind: str, detail: str):
        log = self._profile.event_log
        log.append(ProfileEvent(kind=kind, detail=detail))
        overflow = len(log) - self._config.event_log_limit
        if overflow > 0:
            del log[:overflow]
