"""
Adaptive learning store: per-user reinforcement shared by classifier and persona selector

Holds:
- reinforced intent counts (classifier personalization bias)
- per-persona positive / negative feedback counters (persona blending)
- bounded recent-persona list (switch diagnostics)
- bounded global feedback history

Users are kept in an OrderedDict LRU capped at ``max_tracked_users``. Anonymous
or temporary ids are never tracked.
"""

import threading
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from ..config import EngineConfig, get_engine_config
from ..models import FeedbackPolarity, Intent, PersonaFeedbackCounter, PersonaId
from ..utils.validation import is_persistent_user_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdaptiveUserRecord(BaseModel):
    intent_counts: Dict[Intent, int] = Field(default_factory=dict)
    persona_feedback: Dict[PersonaId, PersonaFeedbackCounter] = Field(default_factory=dict)
    recent_personas: List[PersonaId] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utcnow)


class AdaptiveFeedbackEntry(BaseModel):
    user_id: str
    polarity: FeedbackPolarity
    intent: Optional[Intent] = None
    persona: Optional[PersonaId] = None
    at: datetime = Field(default_factory=_utcnow)


class AdaptiveSnapshot(BaseModel):
    users: Dict[str, AdaptiveUserRecord] = Field(default_factory=dict)
    feedback_history: List[AdaptiveFeedbackEntry] = Field(default_factory=list)


class AdaptiveLearningStore:
    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or get_engine_config()
        self._users: "OrderedDict[str, AdaptiveUserRecord]" = OrderedDict()
        self._feedback_history: List[AdaptiveFeedbackEntry] = []
        self._lock = threading.Lock()

    def _record(self, user_id: str, create: bool = True) -> Optional[AdaptiveUserRecord]:
        record = self._users.get(user_id)
        if record is not None:
            self._users.move_to_end(user_id)
            return record
        if not create:
            return None
        record = AdaptiveUserRecord()
        self._users[user_id] = record
        while len(self._users) > self._config.max_tracked_users:
            evicted, _ = self._users.popitem(last=False)
            logger.debug(f"[Adaptive] Evicted user {evicted}")
        return record

    # --- intents ---

    def reinforce_intent(self, user_id: str, intent: Intent, amount: int = 1):
        if not is_persistent_user_id(user_id) or amount <= 0:
            return
        with self._lock:
            record = self._record(user_id)
            record.intent_counts[intent] = record.intent_counts.get(intent, 0) + amount
            record.updated_at = _utcnow()

    def intent_counts(self, user_id: Optional[str]) -> Dict[Intent, int]:
        if not is_persistent_user_id(user_id):
            return {}
        with self._lock:
            record = self._record(user_id, create=False)
            return dict(record.intent_counts) if record else {}

    def top_intent(self, user_id: Optional[str]) -> Optional[Tuple[Intent, int]]:
        """Most reinforced intent; declaration order of Intent breaks ties."""
        counts = self.intent_counts(user_id)
        if not counts:
            return None
        order = list(Intent)
        intent = max(counts, key=lambda i: (counts[i], -order.index(i)))
        return intent, counts[intent]

    # --- personas ---

    def record_persona_feedback(self, user_id: str, persona: PersonaId, polarity: FeedbackPolarity):
        if not is_persistent_user_id(user_id) or polarity == FeedbackPolarity.NEUTRAL:
            return
        with self._lock:
            record = self._record(user_id)
            counter = record.persona_feedback.setdefault(persona, PersonaFeedbackCounter())
            if polarity == FeedbackPolarity.POSITIVE:
                counter.positive += 1
            else:
                counter.negative += 1
            record.updated_at = _utcnow()

    def persona_feedback(self, user_id: Optional[str]) -> Dict[PersonaId, PersonaFeedbackCounter]:
        if not is_persistent_user_id(user_id):
            return {}
        with self._lock:
            record = self._record(user_id, create=False)
            if record is None:
                return {}
            return {pid: counter.model_copy() for pid, counter in record.persona_feedback.items()}

    def preferred_persona(self, user_id: Optional[str], min_samples: Optional[int] = None) -> Optional[PersonaId]:
        """Max (positive - negative) among personas with at least ``min_samples`` feedback events.

        Only a net-positive persona qualifies.
        """
        min_samples = self._config.persona_min_feedback_samples if min_samples is None else min_samples
        feedback = self.persona_feedback(user_id)
        best: Optional[PersonaId] = None
        best_net = 0
        for persona in PersonaId:
            counter = feedback.get(persona)
            if counter is None or counter.total < min_samples:
                continue
            if counter.net > best_net:
                best, best_net = persona, counter.net
        return best

    def note_persona(self, user_id: Optional[str], persona: PersonaId) -> bool:
        """Append to the recent-persona list; True when it differs from the previous one."""
        if not is_persistent_user_id(user_id):
            return False
        with self._lock:
            record = self._record(user_id)
            switched = bool(record.recent_personas) and record.recent_personas[-1] != persona
            record.recent_personas.append(persona)
            overflow = len(record.recent_personas) - self._config.recent_persona_limit
            if overflow > 0:
                del record.recent_personas[:overflow]
            return switched

    def recent_personas(self, user_id: Optional[str]) -> List[PersonaId]:
        if not is_persistent_user_id(user_id):
            return []
        with self._lock:
            record = self._record(user_id, create=False)
            return list(record.recent_personas) if record else []

    # --- feedback history ---

    def record_feedback(
        self,
        user_id: str,
        polarity: FeedbackPolarity,
        intent: Optional[Intent] = None,
        persona: Optional[PersonaId] = None,
    ):
        """Log the event; positive feedback also reinforces the intent that was served."""
        if not is_persistent_user_id(user_id):
            return
        with self._lock:
            self._feedback_history.append(
                AdaptiveFeedbackEntry(user_id=user_id, polarity=polarity, intent=intent, persona=persona)
            )
            overflow = len(self._feedback_history) - self._config.adaptive_feedback_history_limit
            if overflow > 0:
                del self._feedback_history[:overflow]
        if intent is not None and polarity == FeedbackPolarity.POSITIVE:
            self.reinforce_intent(user_id, intent)
        if persona is not None:
            self.record_persona_feedback(user_id, persona, polarity)

    def feedback_history(self, user_id: Optional[str] = None) -> List[AdaptiveFeedbackEntry]:
        with self._lock:
            if user_id is None:
                return list(self._feedback_history)
            return [e for e in self._feedback_history if e.user_id == user_id]

    # --- lifecycle ---

    def export_data(self) -> Dict[str, Any]:
        with self._lock:
            snapshot = AdaptiveSnapshot(users=dict(self._users), feedback_history=list(self._feedback_history))
            return snapshot.model_dump(mode="json")

    def import_data(self, data: Any) -> bool:
        """Replace the store contents; corrupted data leaves an empty store and returns False."""
        try:
            snapshot = AdaptiveSnapshot.model_validate(data)
        except ValidationError as e:
            logger.warning(f"[Adaptive] Import rejected, resetting to defaults: {e.error_count()} errors")
            self.reset()
            return False
        with self._lock:
            self._users = OrderedDict(snapshot.users)
            self._feedback_history = list(snapshot.feedback_history)
        logger.info(f"[Adaptive] Imported {len(snapshot.users)} users")
        return True

    def reset(self, user_id: Optional[str] = None):
        with self._lock:
            if user_id is None:
                self._users.clear()
                self._feedback_history.clear()
            else:
                self._users.pop(user_id, None)
                self._feedback_history = [e for e in self._feedback_history if e.user_id != user_id]

    def tracked_users(self) -> int:
        return len(self._users)
