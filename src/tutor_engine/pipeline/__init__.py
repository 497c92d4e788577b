from .orchestrator import ConversationOrchestrator
from .session_state import SessionState

__all__ = ["ConversationOrchestrator", "SessionState"]
