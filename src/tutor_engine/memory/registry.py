"""
Memory store registry: one PreferenceMemoryStore per persistent user

Design:
- lazy creation under a lock, at most one store per user id
- loaded from the adapter on creation
- OrderedDict LRU bounded by max_tracked_users; evicted stores are flushed first
- anonymous / invalid ids get no store
"""

import threading
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from loguru import logger

from ..config import EngineConfig, get_engine_config
from ..utils.validation import is_persistent_user_id
from .persistence import InMemoryPersistenceAdapter, PersistenceAdapter
from .profile_store import PreferenceMemoryStore


class MemoryStoreRegistry:
    def __init__(
        self,
        adapter: Optional[PersistenceAdapter] = None,
        config: Optional[EngineConfig] = None,
    ):
        self._adapter = adapter if adapter is not None else InMemoryPersistenceAdapter()
        self._config = config or get_engine_config()
        self._stores: "OrderedDict[str, PreferenceMemoryStore]" = OrderedDict()
        self._lock = threading.Lock()
        self.created_count = 0

    @property
    def adapter(self) -> PersistenceAdapter:
        return self._adapter

    def get_store(self, user_id: Optional[str]) -> Optional[PreferenceMemoryStore]:
        if not is_persistent_user_id(user_id):
            return None

        store = self._stores.get(user_id)
        if store is not None:
            with self._lock:
                if user_id in self._stores:
                    self._stores.move_to_end(user_id)
            return store

        with self._lock:
            store = self._stores.get(user_id)
            if store is not None:
                self._stores.move_to_end(user_id)
                return store
            store = PreferenceMemoryStore(user_id, adapter=self._adapter, config=self._config)
            store.load()
            self._stores[user_id] = store
            self.created_count += 1
            evicted = self._evict_locked()

        for old in evicted:
            old.flush()
        return store

    def _evict_locked(self) -> List[PreferenceMemoryStore]:
        evicted = []
        while len(self._stores) > self._config.max_tracked_users:
            uid, old = self._stores.popitem(last=False)
            logger.debug(f"[Memory] Evicting store for {uid}")
            evicted.append(old)
        return evicted

    def has_store(self, user_id: str) -> bool:
        return user_id in self._stores

    def loaded_users(self) -> List[str]:
        with self._lock:
            return list(self._stores)

    def flush_all(self) -> Dict[str, bool]:
        with self._lock:
            stores = list(self._stores.items())
        results = {uid: store.flush() for uid, store in stores}
        failed = [uid for uid, ok in results.items() if not ok]
        if failed:
            logger.warning(f"[Memory] flush_all: {len(failed)}/{len(results)} stores failed")
        return results

    def reset_user(self, user_id: str) -> bool:
        """Clear one user's profile in memory and in storage."""
        store = self.get_store(user_id)
        if store is None:
            return False
        store.reset()
        try:
            self._adapter.delete(user_id)
        except Exception as e:
            logger.warning(f"[Memory] Delete failed for {user_id}: {e}")
            return False
        return True

    def system_analytics(self) -> Dict[str, Any]:
        with self._lock:
            stores = list(self._stores.values())
        profiles = [s.profile for s in stores]
        total_interactions = sum(p.interaction_count for p in profiles)
        total_feedback = sum(p.feedback_count for p in profiles)
        avg_satisfaction = (
            sum(p.satisfaction_score for p in profiles) / len(profiles) if profiles else 0.0
        )
        formality: Dict[str, int] = {}
        for p in profiles:
            formality[p.preferred_formality.value] = formality.get(p.preferred_formality.value, 0) + 1
        return {
            "loaded_users": len(profiles),
            "stores_created": self.created_count,
            "total_interactions": total_interactions,
            "total_feedback": total_feedback,
            "average_satisfaction": round(avg_satisfaction, 3),
            "formality_distribution": formality,
        }
