"""
Shared data model (pydantic v2)

Every score surfaced through these models is a probability-like value in
[0, 1]. Collections of strings (entities, topics) are de-duplicated by the
producers before they land here.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


Score = Annotated[float, Field(ge=0.0, le=1.0)]


# --- Enums ---


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Intent(str, Enum):
    GREETING = "greeting"
    FRUSTRATED_SEEKING_HELP = "frustrated_seeking_help"
    EXPLORATORY_PLAYFUL = "exploratory_playful"
    BRAINSTORMING_COLLABORATIVE = "brainstorming_collaborative"
    DIRECT_TASK_ORIENTED = "direct_task_oriented"
    EMOTIONAL_SHARING = "emotional_sharing"
    VAGUE_UNCLEAR = "vague_unclear"
    CHALLENGING_SKEPTICAL = "challenging_skeptical"
    LEARNING_FOCUSED = "learning_focused"
    TESTING_SYSTEM = "testing_system"
    EVENT_SHARING = "event_sharing"
    PERSONAL_UPDATE = "personal_update"
    ACHIEVEMENT_ANNOUNCEMENT = "achievement_announcement"
    CHALLENGE_DESCRIPTION = "challenge_description"
    MEMORY_REFERENCE = "memory_reference"
    PREFERENCE_EXPRESSION = "preference_expression"


class UserState(str, Enum):
    FRUSTRATED = "frustrated"
    CONFUSED = "confused"
    CURIOUS = "curious"
    ENGAGED = "engaged"
    DISINTERESTED = "disinterested"
    OVERWHELMED = "overwhelmed"
    SATISFIED = "satisfied"
    EXCITED = "excited"
    CONFIDENT = "confident"
    PROUD = "proud"
    DISAPPOINTED = "disappointed"
    NOSTALGIC = "nostalgic"
    ANXIOUS = "anxious"
    GRATEFUL = "grateful"
    NEUTRAL = "neutral"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class FormalityLevel(str, Enum):
    CASUAL = "casual"
    NEUTRAL = "neutral"
    FORMAL = "formal"


class MoodIntensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SilencePattern(str, Enum):
    NONE = "none"
    RAPID_FIRE = "rapid_fire"
    NORMAL = "normal"
    THOUGHTFUL = "thoughtful"
    PROLONGED = "prolonged"


class ConvictionScenario(str, Enum):
    FACTUAL_ERROR = "factual_error"
    INEFFICIENT_APPROACH = "inefficient_approach"
    CONTRADICTS_GOALS = "contradicts_goals"
    POTENTIALLY_HARMFUL = "potentially_harmful"
    DEAD_END_PATH = "dead_end_path"
    BETTER_ALTERNATIVE = "better_alternative"
    LEARNING_MISCONCEPTION = "learning_misconception"
    SKIPPING_FUNDAMENTALS = "skipping_fundamentals"
    PERFECTIONISM_PARALYSIS = "perfectionism_paralysis"
    NEGATIVE_SELF_TALK = "negative_self_talk"


class ConvictionIntensity(str, Enum):
    NONE = "none"
    GENTLE = "gentle"
    MEDIUM = "medium"
    FIRM = "firm"


class PersonaId(str, Enum):
    EDUCATOR = "educator"
    SOCRATIC = "socratic"
    DETAILED = "detailed"
    CONCISE = "concise"
    FRIENDLY = "friendly"
    FORMAL = "formal"


class PersonaIntensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FlowLabel(str, Enum):
    INITIAL = "initial"
    DEEP_LEARNING = "deep_learning"
    BUILDING_ENGAGEMENT = "building_engagement"
    STRUCTURED_LEARNING = "structured_learning"
    EXPLORATORY_BROWSING = "exploratory_browsing"


class ResponseLength(str, Enum):
    CONCISE = "concise"
    MEDIUM = "medium"
    DETAILED = "detailed"


class MarkerDensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FeedbackIssue(str, Enum):
    TOO_FORMAL = "too_formal"
    TOO_CASUAL = "too_casual"
    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    WRONG_PERSONA = "wrong_persona"


class FeedbackPolarity(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# --- Conversation input ---


class Message(BaseModel):
    """One history entry. Enriching a message means copying it with ``user_state`` set."""

    model_config = ConfigDict(frozen=True)

    text: str
    role: MessageRole = MessageRole.USER
    timestamp: Optional[datetime] = None
    user_state: Optional[UserState] = None


# --- Extractor / classifier output ---


class EntitySet(BaseModel):
    names: List[str] = Field(default_factory=list)
    places: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    institutions: List[str] = Field(default_factory=list)
    time_expressions: List[str] = Field(default_factory=list)
    emotions: List[str] = Field(default_factory=list)
    events: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)
    numbers: List[str] = Field(default_factory=list)
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in type(self).model_fields)

    def counts(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in type(self).model_fields}


class CulturalContext(BaseModel):
    is_mixed_vernacular: bool = False
    formality_level: FormalityLevel = FormalityLevel.NEUTRAL
    formality_score: float = 0.0
    markers: Dict[str, List[str]] = Field(default_factory=dict)
    vernacular_marker_count: int = 0


class MoodSignals(BaseModel):
    patterns: Dict[str, int] = Field(default_factory=dict)
    mood_score: Score = 0.0
    intensity: MoodIntensity = MoodIntensity.LOW
    silence_pattern: SilencePattern = SilencePattern.NONE


class StateTransition(BaseModel):
    has_transition: bool = False
    from_state: Optional[UserState] = None
    to_state: Optional[UserState] = None
    transition_type: Optional[str] = None


class ContextualCues(BaseModel):
    has_continuity: bool = False
    related_to_previous: bool = False
    emotional_progression: Optional[str] = None
    learning_phase: Optional[str] = None
    learning_indicators: List[str] = Field(default_factory=list)


class RepeatedPatterns(BaseModel):
    repeated_questions: int = 0
    repeated_topics: int = 0
    repeated_emotions: int = 0
    stuck_indicators: int = 0
    is_stuck: bool = False
    needs_new_approach: bool = False


class ClassificationMetadata(BaseModel):
    message_length: int = 0
    word_count: int = 0
    has_question: bool = False
    context_window_size: int = 0


class ClassificationResult(BaseModel):
    intent: Intent
    intent_confidence: Score
    intent_indicators: List[str] = Field(default_factory=list)
    user_state: UserState
    state_confidence: Score
    state_indicators: List[str] = Field(default_factory=list)
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_confidence: Score = 0.5
    cultural_context: CulturalContext = Field(default_factory=CulturalContext)
    entities: EntitySet = Field(default_factory=EntitySet)
    mood: MoodSignals = Field(default_factory=MoodSignals)
    state_transition: StateTransition = Field(default_factory=StateTransition)
    contextual_cues: ContextualCues = Field(default_factory=ContextualCues)
    repeated_patterns: RepeatedPatterns = Field(default_factory=RepeatedPatterns)
    metadata: ClassificationMetadata = Field(default_factory=ClassificationMetadata)
    personalized: bool = False


# --- Conviction ---


class ConvictionResponse(BaseModel):
    """Five rhetorical slots, always rendered in this order."""

    acknowledge: str
    alternative: str
    reasoning: str
    persuasive_nudge: str
    empower_choice: str

    def as_text(self) -> str:
        return " ".join(
            [self.acknowledge, self.alternative, self.reasoning, self.persuasive_nudge, self.empower_choice]
        )


class ConvictionDecision(BaseModel):
    should_trigger: bool = False
    scenario: Optional[ConvictionScenario] = None
    confidence: Score = 0.0
    intensity: ConvictionIntensity = ConvictionIntensity.NONE
    rationale: str = ""
    matched_patterns: List[str] = Field(default_factory=list)
    alternative_approach: str = ""
    response: Optional[ConvictionResponse] = None
    tone: Optional[str] = None

    @classmethod
    def no_intervention(cls, rationale: str = "no conviction trigger") -> "ConvictionDecision":
        return cls(rationale=rationale)


# --- Persona ---


class SimplePersona(BaseModel):
    kind: Literal["simple"] = "simple"
    id: PersonaId

    @property
    def primary(self) -> PersonaId:
        return self.id


class BlendedPersona(BaseModel):
    kind: Literal["blended"] = "blended"
    primary: PersonaId
    secondary: PersonaId
    ratio: Score


Persona = Annotated[Union[SimplePersona, BlendedPersona], Field(discriminator="kind")]


class PersonaDecision(BaseModel):
    persona: Persona
    confidence: Score
    raw_confidence: Score
    intensity_multiplier: float = 1.0
    intensity: PersonaIntensity = PersonaIntensity.LOW
    should_activate: bool = False
    pattern_scores: Dict[str, float] = Field(default_factory=dict)
    preferred_persona: Optional[PersonaId] = None
    reason: str = ""

    @property
    def persona_id(self) -> PersonaId:
        return self.persona.primary

    @property
    def is_blended(self) -> bool:
        return isinstance(self.persona, BlendedPersona)

    @property
    def blend_ratio(self) -> Optional[float]:
        return self.persona.ratio if isinstance(self.persona, BlendedPersona) else None


class PersonaFeedbackCounter(BaseModel):
    positive: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.negative

    @property
    def net(self) -> int:
        return self.positive - self.negative


# --- Memory / profile ---


class ProfileEvent(BaseModel):
    kind: str
    detail: str = ""
    at: datetime = Field(default_factory=_utcnow)


class FeedbackEvent(BaseModel):
    interaction_id: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    polarity: Optional[FeedbackPolarity] = None
    issue: Optional[FeedbackIssue] = None
    appreciated_feature: Optional[str] = None
    importance: float = Field(default=1.0, ge=0.0, le=1.0)
    comment: Optional[str] = None

    @property
    def resolved_polarity(self) -> FeedbackPolarity:
        if self.polarity is not None:
            return self.polarity
        if self.rating is not None:
            if self.rating > 3:
                return FeedbackPolarity.POSITIVE
            if self.rating < 3:
                return FeedbackPolarity.NEGATIVE
        if self.issue is not None:
            return FeedbackPolarity.NEGATIVE
        return FeedbackPolarity.NEUTRAL


class FeedbackRecord(BaseModel):
    interaction_id: Optional[str] = None
    rating: Optional[int] = None
    polarity: FeedbackPolarity = FeedbackPolarity.NEUTRAL
    issue: Optional[FeedbackIssue] = None
    at: datetime = Field(default_factory=_utcnow)


class InteractionRecord(BaseModel):
    interaction_id: str
    message: str
    response: str = ""
    intent: Optional[Intent] = None
    user_state: Optional[UserState] = None
    persona: Optional[PersonaId] = None
    formality: FormalityLevel = FormalityLevel.NEUTRAL
    topics: List[str] = Field(default_factory=list)
    rating: Optional[int] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class UserProfile(BaseModel):
    user_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    interaction_count: int = 0

    formality_votes: Dict[FormalityLevel, float] = Field(
        default_factory=lambda: {level: 0.0 for level in FormalityLevel}
    )
    preferred_formality: FormalityLevel = FormalityLevel.NEUTRAL
    formality_confidence: Score = 0.5

    average_message_length: float = 0.0
    response_length: ResponseLength = ResponseLength.MEDIUM
    response_length_confidence: Score = 0.5

    vernacular_ratio: Score = 0.0
    marker_density: MarkerDensity = MarkerDensity.LOW

    topics: Dict[str, int] = Field(default_factory=dict)
    entities: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    intents: Dict[str, int] = Field(default_factory=dict)
    emotional_histogram: Dict[str, int] = Field(default_factory=dict)
    likes: List[str] = Field(default_factory=list)
    dislikes: List[str] = Field(default_factory=list)

    event_log: List[ProfileEvent] = Field(default_factory=list)
    feedback_log: List[FeedbackRecord] = Field(default_factory=list)
    interactions: List[InteractionRecord] = Field(default_factory=list)

    persona_scores: Dict[PersonaId, PersonaFeedbackCounter] = Field(default_factory=dict)
    excluded_personas: List[PersonaId] = Field(default_factory=list)
    satisfaction_score: Score = 0.5
    feedback_count: int = 0

    @property
    def preferred_personas(self) -> List[PersonaId]:
        """Personas ranked by net positive feedback, excluded ones dropped."""
        ranked = sorted(
            (
                (pid, counter)
                for pid, counter in self.persona_scores.items()
                if pid not in self.excluded_personas and counter.net > 0
            ),
            key=lambda item: (-item[1].net, -item[1].positive, item[0].value),
        )
        return [pid for pid, _ in ranked]


class PersonalizedRecommendations(BaseModel):
    persona: Optional[PersonaId] = None
    formality: FormalityLevel = FormalityLevel.NEUTRAL
    response_length: ResponseLength = ResponseLength.MEDIUM
    marker_density: MarkerDensity = MarkerDensity.LOW
    proactive_questions: List[str] = Field(default_factory=list, max_length=3)
    based_on_interactions: int = 0


# --- Flow ---


class QuestionSequence(BaseModel):
    question_types: List[str] = Field(default_factory=list)
    question_count: int = 0
    is_deep_diving: bool = False


class TopicProgression(BaseModel):
    topics: List[str] = Field(default_factory=list)
    topic_switches: int = 0
    scatter_ratio: Score = 0.0
    is_scattered: bool = False
    is_focused: bool = False


class EngagementTrend(BaseModel):
    scores: List[float] = Field(default_factory=list)
    average: Score = 0.0
    trend: Literal["rising", "falling", "stable"] = "stable"


class LearningProgression(BaseModel):
    score: float = 0.0
    indicators: List[str] = Field(default_factory=list)
    is_progressing: bool = False
    level: Literal["beginning", "developing", "advancing"] = "beginning"


class CulturalAlignment(BaseModel):
    style_counts: Dict[FormalityLevel, int] = Field(default_factory=dict)
    dominant_style: FormalityLevel = FormalityLevel.NEUTRAL
    current_style: FormalityLevel = FormalityLevel.NEUTRAL
    vernacular_turns: int = 0
    adaptation_needed: bool = False


class FlowRecommendation(BaseModel):
    type: str
    suggestion: str
    priority: Literal["high", "medium", "low"] = "medium"


class FlowAnalysis(BaseModel):
    flow: FlowLabel = FlowLabel.INITIAL
    confidence: Score = 0.5
    message_count: int = 0
    question_sequence: QuestionSequence = Field(default_factory=QuestionSequence)
    topic_progression: TopicProgression = Field(default_factory=TopicProgression)
    engagement: EngagementTrend = Field(default_factory=EngagementTrend)
    learning_progression: LearningProgression = Field(default_factory=LearningProgression)
    cultural_alignment: CulturalAlignment = Field(default_factory=CulturalAlignment)
    is_stuck: bool = False
    recommendations: List[FlowRecommendation] = Field(default_factory=list)


# --- Orchestrator ---


class SessionMetrics(BaseModel):
    message_count: int = 0
    engagement_score: Score = 0.0
    conviction_triggers: int = 0
    persona_switches: int = 0
    learning_progress: float = 0.0
    average_intent_confidence: Score = 0.0
    is_mixed_vernacular: bool = False
    formality_level: FormalityLevel = FormalityLevel.NEUTRAL
    current_persona: Optional[PersonaId] = None


class SystemRecommendation(BaseModel):
    type: str
    priority: Literal["high", "medium", "low"] = "medium"
    message: str


class ResponseStrategy(BaseModel):
    primary: Literal["standard_response", "conviction_response"] = "standard_response"
    persona: PersonaId = PersonaId.EDUCATOR
    modifications: List[str] = Field(default_factory=list)


class ConversationDecision(BaseModel):
    user_id: Optional[str] = None
    session_id: str
    interaction_id: Optional[str] = None
    classification: ClassificationResult
    conviction: ConvictionDecision
    persona: PersonaDecision
    flow: FlowAnalysis
    recommendations: PersonalizedRecommendations = Field(default_factory=PersonalizedRecommendations)
    system_recommendations: List[SystemRecommendation] = Field(default_factory=list)
    response_strategy: ResponseStrategy = Field(default_factory=ResponseStrategy)
    session_metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    created_at: datetime = Field(default_factory=_utcnow)


class FeedbackOutcome(BaseModel):
    processed: bool
    polarity: FeedbackPolarity = FeedbackPolarity.NEUTRAL
    engagement_score: Score = 0.0
    memory_updated: bool = False
    improvements: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)
