"""Shared fixtures for the tutor engine tests."""

import pytest

from tutor_engine.classifier.adaptive_store import AdaptiveLearningStore
from tutor_engine.config import EngineConfig, reset_engine_config_for_testing
from tutor_engine.memory.persistence import InMemoryPersistenceAdapter
from tutor_engine.memory.registry import MemoryStoreRegistry
from tutor_engine.models import ClassificationResult, Intent, UserState
from tutor_engine.pipeline.orchestrator import ConversationOrchestrator


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    reset_engine_config_for_testing()
    yield
    reset_engine_config_for_testing()


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def adapter():
    return InMemoryPersistenceAdapter()


@pytest.fixture
def adaptive_store(config):
    return AdaptiveLearningStore(config)


@pytest.fixture
def registry(adapter, config):
    return MemoryStoreRegistry(adapter, config)


@pytest.fixture
def orchestrator(config, adapter):
    return ConversationOrchestrator(config=config, persistence_adapter=adapter)


@pytest.fixture
def make_classification():
    """Build a ClassificationResult with only the fields a test cares about."""

    def _make(intent=Intent.LEARNING_FOCUSED, state=UserState.CURIOUS, **kwargs):
        return ClassificationResult(
            intent=intent,
            intent_confidence=kwargs.pop("intent_confidence", 0.7),
            user_state=state,
            state_confidence=kwargs.pop("state_confidence", 0.7),
            **kwargs,
        )

    return _make


def confused_history(turns=5):
    """``turns`` confused user messages, each followed by an assistant reply."""
    history = []
    for i in range(turns):
        history.append({"role": "user", "text": f"I'm still confused about step {i + 1}"})
        history.append({"role": "assistant", "text": "Let's look at it another way."})
    return history


@pytest.fixture
def five_confused_turns():
    return confused_history(5)
