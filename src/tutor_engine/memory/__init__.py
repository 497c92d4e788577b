"""Per-user preference memory and its persistence port."""

from .persistence import InMemoryPersistenceAdapter, JsonFilePersistenceAdapter, PersistenceAdapter
from .profile_store import InteractionMetadata, PreferenceMemoryStore
from .registry import MemoryStoreRegistry

__all__ = [
    "PersistenceAdapter",
    "InMemoryPersistenceAdapter",
    "JsonFilePersistenceAdapter",
    "InteractionMetadata",
    "PreferenceMemoryStore",
    "MemoryStoreRegistry",
]
