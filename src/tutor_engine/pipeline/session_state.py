"""
Per-conversation session state

Replaces a process-wide mutable state object: each conversation owns its own
metrics, and the orchestrator keeps sessions in a bounded LRU.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from ..models import FormalityLevel, PersonaId, SessionMetrics


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return uuid.uuid4().hex


class SessionState(BaseModel):
    session_id: str = Field(default_factory=new_session_id)
    user_id: Optional[str] = None
    metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    conviction_active: bool = False
    last_formality: Optional[FormalityLevel] = None
    last_interaction_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def current_persona(self) -> Optional[PersonaId]:
        return self.metrics.current_persona

    def touch(self):
        self.updated_at = _utcnow()
