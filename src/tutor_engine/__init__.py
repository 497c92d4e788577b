"""
Tutor engine

Rule-based conversational intelligence for a bilingual (Roman Urdu / English)
tutoring assistant: message classification, conviction guidance, persona
selection, preference memory and conversation flow analysis.

```python
from tutor_engine import ConversationOrchestrator

engine = ConversationOrchestrator()
decision = engine.process_turn("yaar samajh nahi aa raha", history=[], user_id="student-42")
decision.persona.persona_id      # PersonaId.FRIENDLY
engine.process_feedback({"rating": 5}, decision)
```
"""

__version__ = "0.1.0"

from .classifier.adaptive_store import AdaptiveLearningStore
from .classifier.message_classifier import MessageClassifier, quick_classify
from .config import EngineConfig, EngineConfigError, get_engine_config, load_engine_config
from .conviction.evaluator import ConvictionEvaluator, format_conviction_directive
from .extractors.entity_extractor import (
    entity_stats,
    extract_entities,
    extract_entities_from_history,
    extract_markers,
)
from .flow.flow_analyzer import FlowAnalyzer
from .memory import (
    InMemoryPersistenceAdapter,
    JsonFilePersistenceAdapter,
    MemoryStoreRegistry,
    PersistenceAdapter,
    PreferenceMemoryStore,
)
from .models import ConversationDecision, FeedbackEvent, FeedbackOutcome, Message
from .persona import PersonaSelector, blend_prompt, get_persona_prompt
from .pipeline import ConversationOrchestrator, SessionState

__all__ = [
    "AdaptiveLearningStore",
    "ConversationDecision",
    "ConversationOrchestrator",
    "ConvictionEvaluator",
    "EngineConfig",
    "EngineConfigError",
    "FeedbackEvent",
    "FeedbackOutcome",
    "FlowAnalyzer",
    "InMemoryPersistenceAdapter",
    "JsonFilePersistenceAdapter",
    "MemoryStoreRegistry",
    "Message",
    "MessageClassifier",
    "PersistenceAdapter",
    "PersonaSelector",
    "PreferenceMemoryStore",
    "SessionState",
    "blend_prompt",
    "entity_stats",
    "extract_entities",
    "extract_entities_from_history",
    "extract_markers",
    "format_conviction_directive",
    "get_engine_config",
    "get_persona_prompt",
    "load_engine_config",
    "quick_classify",
]
