"""
Conversation orchestrator: one call per user turn

Design:
- classify -> conviction -> persona -> flow (enriched history copy) -> memory
- the orchestrator owns the adaptive store, the memory registry and the sessions
- sessions live in an OrderedDict LRU; a turn without an explicit session uses
  the user's default session (anonymous turns get a fresh one)
- feedback is keyed by the decision it rates
- persona learning is kept for persistent user ids only; the stored profile
  carries it across restarts
"""

import json
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from ..classifier.adaptive_store import AdaptiveLearningStore
from ..classifier.message_classifier import MessageClassifier
from ..config import EngineConfig, get_engine_config
from ..conviction.evaluator import ConvictionEvaluator
from ..flow.flow_analyzer import FlowAnalyzer
from ..memory.persistence import PersistenceAdapter
from ..memory.profile_store import InteractionMetadata
from ..memory.registry import MemoryStoreRegistry
from ..models import (
    ClassificationResult,
    ConversationDecision,
    ConvictionDecision,
    FeedbackEvent,
    FeedbackOutcome,
    FeedbackPolarity,
    FlowAnalysis,
    FlowLabel,
    Message,
    MessageRole,
    MoodIntensity,
    PersonaDecision,
    PersonalizedRecommendations,
    ResponseStrategy,
    SystemRecommendation,
    UserState,
)
from ..persona.selector import PersonaSelector
from ..utils.validation import (
    clamp,
    coerce_text,
    is_persistent_user_id,
    is_valid_user_id,
    normalize_history,
    parse_timestamp,
)
from .session_state import SessionState

STATE_ENGAGEMENT = {
    UserState.ENGAGED: 1.0,
    UserState.EXCITED: 0.9,
    UserState.CURIOUS: 0.8,
    UserState.CONFIDENT: 0.7,
    UserState.SATISFIED: 0.6,
    UserState.CONFUSED: 0.4,
    UserState.FRUSTRATED: 0.3,
    UserState.DISINTERESTED: 0.2,
}
DEFAULT_ENGAGEMENT = 0.5
MOOD_BONUS = {MoodIntensity.HIGH: 0.2, MoodIntensity.MEDIUM: 0.1}
VERNACULAR_BONUS = 0.1
FLOW_BONUS = {FlowLabel.DEEP_LEARNING: 0.2, FlowLabel.BUILDING_ENGAGEMENT: 0.15}
FEEDBACK_ENGAGEMENT_STEP = 0.1

LOW_ENGAGEMENT = 0.3
BOOST_ENGAGEMENT = 0.4
PERSONA_SWITCH_LIMIT = 5
LOW_PERSONA_CONFIDENCE = 0.7


def turn_engagement(classification: ClassificationResult, flow: FlowAnalysis) -> float:
    score = STATE_ENGAGEMENT.get(classification.user_state, DEFAULT_ENGAGEMENT)
    score += MOOD_BONUS.get(classification.mood.intensity, 0.0)
    if classification.cultural_context.is_mixed_vernacular:
        score += VERNACULAR_BONUS
    score += FLOW_BONUS.get(flow.flow, 0.0)
    return clamp(score)


class ConversationOrchestrator:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        adaptive_store: Optional[AdaptiveLearningStore] = None,
        memory_registry: Optional[MemoryStoreRegistry] = None,
        persistence_adapter: Optional[PersistenceAdapter] = None,
    ):
        self._config = config or get_engine_config()
        self._adaptive = adaptive_store or AdaptiveLearningStore(self._config)
        self._registry = memory_registry or MemoryStoreRegistry(persistence_adapter, self._config)
        self._classifier = MessageClassifier(self._config, self._adaptive)
        self._conviction = ConvictionEvaluator(self._config)
        self._selector = PersonaSelector(self._config, self._adaptive)
        self._flow = FlowAnalyzer(self._config)
        self._sessions: "OrderedDict[str, SessionState]" = OrderedDict()
        self._default_sessions: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def adaptive_store(self) -> AdaptiveLearningStore:
        return self._adaptive

    @property
    def memory_registry(self) -> MemoryStoreRegistry:
        return self._registry

    # --- turns ---

    def process_turn(
        self,
        message,
        history: Optional[Sequence] = None,
        user_id: Optional[str] = None,
        session: Optional[Union[SessionState, str]] = None,
        timestamp: Optional[Union[datetime, int, float, str]] = None,
    ) -> ConversationDecision:
        """Run the full pipeline for one user message.

        Never raises on bad input: an empty message or malformed history yields
        low-confidence defaults, and a malformed ``user_id`` is treated as
        anonymous. ``history`` is copied, never modified. ``timestamp`` (datetime,
        epoch or ISO string) feeds the silence analysis.
        """
        user_id = self._checked_user_id(user_id)
        state = self._resolve_session(session, user_id)
        text = coerce_text(message)
        window = normalize_history(history, window=self._config.history_max)
        sent_at = parse_timestamp(timestamp)

        store = self._registry.get_store(user_id)
        profile = store.profile if store is not None else None

        classification = self._classifier.classify(text, window, user_id=user_id, timestamp=sent_at)
        conviction = self._conviction.evaluate(text, window, classification)
        persona = self._selector.select(text, classification, window, user_id=user_id, profile=profile)
        self._adaptive.note_persona(user_id, persona.persona_id)

        enriched = list(window)
        if text:
            enriched.append(
                Message(text=text, role=MessageRole.USER, timestamp=sent_at, user_state=classification.user_state)
            )
        metrics = state.metrics
        previous_persona = metrics.current_persona
        if previous_persona is not None and previous_persona != persona.persona_id:
            metrics.persona_switches += 1
        flow = self._flow.analyze(enriched, persona_switches=metrics.persona_switches)

        interaction_id = None
        recommendations = PersonalizedRecommendations()
        if store is not None and text:
            interaction_id = store.record_interaction(
                text, metadata=InteractionMetadata.from_classification(classification, persona.persona_id)
            )
            recommendations = store.get_personalized_recommendations(classification)

        previous_formality = state.last_formality
        self._update_metrics(state, classification, conviction, persona, flow)
        state.last_formality = classification.cultural_context.formality_level
        state.last_interaction_id = interaction_id
        state.touch()

        decision = ConversationDecision(
            user_id=user_id,
            session_id=state.session_id,
            interaction_id=interaction_id,
            classification=classification,
            conviction=conviction,
            persona=persona,
            flow=flow,
            recommendations=recommendations,
            system_recommendations=self._system_recommendations(state, classification, flow, previous_formality),
            response_strategy=self._response_strategy(state, classification, conviction, persona, flow),
            session_metrics=metrics.model_copy(),
        )
        logger.debug(
            f"[Orchestrator] session={state.session_id[:8]} intent={classification.intent.value} "
            f"persona={persona.persona_id.value} conviction={conviction.should_trigger} flow={flow.flow.value}"
        )
        return decision

    def _update_metrics(
        self,
        state: SessionState,
        classification: ClassificationResult,
        conviction: ConvictionDecision,
        persona: PersonaDecision,
        flow: FlowAnalysis,
    ):
        metrics = state.metrics
        metrics.message_count += 1
        n = metrics.message_count
        if conviction.should_trigger:
            metrics.conviction_triggers += 1
            state.conviction_active = True

        engagement = turn_engagement(classification, flow)
        if n == 1:
            metrics.engagement_score = engagement
        else:
            metrics.engagement_score = clamp((metrics.engagement_score + engagement) / 2)

        metrics.average_intent_confidence = clamp(
            metrics.average_intent_confidence + (classification.intent_confidence - metrics.average_intent_confidence) / n
        )
        metrics.learning_progress = flow.learning_progression.score
        metrics.is_mixed_vernacular = classification.cultural_context.is_mixed_vernacular
        metrics.formality_level = classification.cultural_context.formality_level
        metrics.current_persona = persona.persona_id

    @staticmethod
    def _response_strategy(
        state: SessionState,
        classification: ClassificationResult,
        conviction: ConvictionDecision,
        persona: PersonaDecision,
        flow: FlowAnalysis,
    ) -> ResponseStrategy:
        strategy = ResponseStrategy(persona=persona.persona_id)
        if conviction.should_trigger:
            strategy.primary = "conviction_response"
            strategy.modifications.append("conviction_integration")
        if persona.is_blended:
            strategy.modifications.append("persona_blending")
        if classification.cultural_context.is_mixed_vernacular:
            strategy.modifications.append("cultural_mixing")
        if state.metrics.engagement_score < BOOST_ENGAGEMENT:
            strategy.modifications.append("engagement_boost")
        if flow.learning_progression.is_progressing:
            strategy.modifications.append("learning_advancement")
        if flow.is_stuck:
            strategy.modifications.append("new_approach")
        return strategy

    @staticmethod
    def _system_recommendations(
        state: SessionState,
        classification: ClassificationResult,
        flow: FlowAnalysis,
        previous_formality,
    ) -> List[SystemRecommendation]:
        metrics = state.metrics
        recs: List[SystemRecommendation] = []
        if metrics.persona_switches > PERSONA_SWITCH_LIMIT:
            recs.append(SystemRecommendation(
                type="persona_stability",
                priority="medium",
                message=f"Persona switched {metrics.persona_switches} times; hold one voice for longer",
            ))
        if metrics.engagement_score < LOW_ENGAGEMENT:
            recs.append(SystemRecommendation(
                type="engagement_intervention",
                priority="high",
                message="Engagement is low; switch to the friendly persona or add interactive elements",
            ))
        current = classification.cultural_context.formality_level
        if (
            classification.cultural_context.is_mixed_vernacular
            and previous_formality is not None
            and previous_formality != current
        ):
            recs.append(SystemRecommendation(
                type="cultural_consistency",
                priority="low",
                message=f"Register moved from {previous_formality.value} to {current.value}; keep it consistent",
            ))
        if flow.topic_progression.is_scattered:
            recs.append(SystemRecommendation(
                type="learning_focus",
                priority="medium",
                message="Suggest focusing on fewer topics: " + ", ".join(flow.topic_progression.topics),
            ))
        return recs

    # --- feedback ---

    def process_feedback(
        self,
        feedback: Union[FeedbackEvent, Dict[str, Any], str],
        context: Union[ConversationDecision, Dict[str, Any]],
    ) -> FeedbackOutcome:
        """Apply user feedback on a previous decision.

        ``feedback`` may be a FeedbackEvent, its dict form, or a bare polarity
        string ("positive" / "negative" / "neutral").
        """
        try:
            if isinstance(feedback, str):
                feedback = FeedbackEvent(polarity=FeedbackPolarity(feedback.strip().lower()))
            elif not isinstance(feedback, FeedbackEvent):
                feedback = FeedbackEvent.model_validate(feedback)
            if not isinstance(context, ConversationDecision):
                context = ConversationDecision.model_validate(context)
        except (ValidationError, ValueError) as e:
            logger.warning(f"[Orchestrator] Rejected feedback: {e}")
            return FeedbackOutcome(processed=False)

        polarity = feedback.resolved_polarity
        user_id = self._checked_user_id(context.user_id)
        persona_id = context.persona.persona_id

        memory_updated = False
        interaction_id = feedback.interaction_id or context.interaction_id
        store = self._registry.get_store(user_id)
        if store is not None and interaction_id:
            memory_updated = store.record_feedback(interaction_id, feedback)

        # anonymous ids only move engagement; the adaptive store ignores them
        self._selector.record_feedback(user_id, persona_id, polarity)
        self._adaptive.record_feedback(user_id, polarity, intent=context.classification.intent)

        engagement = context.session_metrics.engagement_score
        state = self._sessions.get(context.session_id)
        if state is not None:
            engagement = state.metrics.engagement_score
        if polarity == FeedbackPolarity.POSITIVE:
            engagement = clamp(engagement + FEEDBACK_ENGAGEMENT_STEP)
        elif polarity == FeedbackPolarity.NEGATIVE:
            engagement = clamp(engagement - FEEDBACK_ENGAGEMENT_STEP)
        if state is not None:
            state.metrics.engagement_score = engagement
            state.touch()

        logger.info(
            f"[Orchestrator] Feedback {polarity.value} for {user_id or 'anonymous'} "
            f"persona={persona_id.value} memory_updated={memory_updated}"
        )
        return FeedbackOutcome(
            processed=True,
            polarity=polarity,
            engagement_score=engagement,
            memory_updated=memory_updated,
            improvements=self._improvements(polarity, context),
            details={
                "persona": persona_id.value,
                "intent": context.classification.intent.value,
                "issue": feedback.issue.value if feedback.issue else None,
            },
        )

    @staticmethod
    def _improvements(polarity: FeedbackPolarity, context: ConversationDecision) -> List[str]:
        if polarity != FeedbackPolarity.NEGATIVE:
            return []
        suggestions = []
        if context.persona.confidence < LOW_PERSONA_CONFIDENCE:
            suggestions.append("persona_adjustment")
        if context.conviction.should_trigger:
            suggestions.append("conviction_adjustment")
        if context.classification.cultural_context.is_mixed_vernacular:
            suggestions.append("cultural_adaptation")
        return suggestions

    # --- sessions ---

    def create_session(self, user_id: Optional[str] = None) -> SessionState:
        user_id = self._checked_user_id(user_id)
        state = SessionState(user_id=user_id)
        self._remember(state)
        logger.info(f"[Orchestrator] Created session {state.session_id[:8]} for {user_id or 'anonymous'}")
        return state

    def get_session(self, session_id: str) -> Optional[SessionState]:
        with self._lock:
            state = self._sessions.get(session_id)
            if state is not None:
                self._sessions.move_to_end(session_id)
            return state

    def reset_session(self, session_id: str) -> bool:
        with self._lock:
            state = self._sessions.get(session_id)
            if state is None:
                return False
            self._sessions[session_id] = SessionState(session_id=session_id, user_id=state.user_id)
        logger.info(f"[Orchestrator] Reset session {session_id[:8]}")
        return True

    def export_session(self, session_id: str) -> Optional[str]:
        state = self.get_session(session_id)
        if state is None:
            return None
        return state.model_dump_json()

    def import_session(self, data: Union[str, Dict[str, Any]]) -> bool:
        """Restore an exported session; corrupted data is rejected with False."""
        try:
            if isinstance(data, str):
                data = json.loads(data)
            state = SessionState.model_validate(data)
        except (ValueError, TypeError) as e:
            logger.warning(f"[Orchestrator] Session import rejected: {type(e).__name__}")
            return False
        self._remember(state)
        return True

    def _remember(self, state: SessionState):
        with self._lock:
            self._sessions[state.session_id] = state
            self._sessions.move_to_end(state.session_id)
            if state.user_id and is_persistent_user_id(state.user_id):
                self._default_sessions.setdefault(state.user_id, state.session_id)
            while len(self._sessions) > self._config.max_tracked_users:
                evicted_id, evicted = self._sessions.popitem(last=False)
                if evicted.user_id and self._default_sessions.get(evicted.user_id) == evicted_id:
                    del self._default_sessions[evicted.user_id]

    @staticmethod
    def _checked_user_id(user_id: Any) -> Optional[str]:
        if user_id is None or is_valid_user_id(user_id):
            return user_id
        logger.warning(f"[Orchestrator] Ignoring malformed user id of type {type(user_id).__name__}")
        return None

    def _resolve_session(self, session: Optional[Union[SessionState, str]], user_id: Optional[str]) -> SessionState:
        if isinstance(session, SessionState):
            if self._sessions.get(session.session_id) is not session:
                self._remember(session)
            return session
        if isinstance(session, str):
            state = self.get_session(session)
            if state is not None:
                return state
            logger.warning(f"[Orchestrator] Unknown session {session[:8]}, starting a new one")
        elif is_persistent_user_id(user_id):
            default_id = self._default_sessions.get(user_id)
            state = self.get_session(default_id) if default_id else None
            if state is not None:
                return state
        return self.create_session(user_id)

    # --- analytics ---

    def analytics(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Session summary plus persona history and the stored profile when available."""
        state = None
        if is_persistent_user_id(user_id):
            default_id = self._default_sessions.get(user_id)
            state = self._sessions.get(default_id) if default_id else None
        metrics = state.metrics if state is not None else None
        store = self._registry.get_store(user_id)
        preferred = self._selector.preferred_persona(user_id, store.profile if store is not None else None)

        result: Dict[str, Any] = {
            "user_id": user_id,
            "session": metrics.model_dump(mode="json") if metrics else None,
            "persona_history": [p.value for p in self._adaptive.recent_personas(user_id)],
            "preferred_persona": preferred.value if preferred else None,
            "profile": store.get_analytics() if store is not None else None,
            "system": self._registry.system_analytics(),
        }
        if metrics is not None:
            result["performance"] = {
                "engagement_trend": "positive" if metrics.engagement_score > 0.6 else "needs_improvement",
                "adaptation_level": "stable" if metrics.persona_switches < 3 else "adaptive",
                "cultural_alignment": "mixed" if metrics.is_mixed_vernacular else "standard",
            }
        return result

    def advanced_metrics(self, history: Optional[Sequence] = None, session_id: Optional[str] = None) -> Dict[str, Any]:
        flow = self._flow.analyze(history)
        state = self.get_session(session_id) if session_id else None
        return {
            "flow": flow.flow.value,
            "confidence": flow.confidence,
            "learning_progression": flow.learning_progression.model_dump(mode="json"),
            "engagement": {
                "trend": flow.engagement.trend,
                "average": flow.engagement.average,
                "current": state.metrics.engagement_score if state is not None else None,
            },
            "cultural_alignment": {
                "dominant_style": flow.cultural_alignment.dominant_style.value,
                "adaptation_needed": flow.cultural_alignment.adaptation_needed,
            },
            "topic_progression": {
                "focus": "focused" if flow.topic_progression.is_focused else "scattered",
                "topic_switches": flow.topic_progression.topic_switches,
                "subjects": list(flow.topic_progression.topics),
            },
            "is_stuck": flow.is_stuck,
        }

    def flush(self) -> Dict[str, bool]:
        """Persist every loaded memory store."""
        return self._registry.flush_all()
