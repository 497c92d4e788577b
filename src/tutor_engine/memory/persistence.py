"""
Persistence adapters for preference profiles

The engine never talks to a database directly. A `PersistenceAdapter` moves
one serialized profile (a JSON-compatible dict) in and out of durable
storage; failures are raised to the store, which reports them as booleans.
"""

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from loguru import logger

from ..utils.validation import is_valid_user_id


class PersistenceAdapter(ABC):
    """Durable storage port.

    Subclasses implement:
    - save(): write one serialized profile
    - load(): read it back, None when the user has no stored profile

    Optional:
    - delete(): remove a stored profile
    """

    @abstractmethod
    def save(self, user_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    def delete(self, user_id: str) -> None:
        return None


class InMemoryPersistenceAdapter(PersistenceAdapter):
    """Process-local storage, mainly for tests and single-process deployments."""

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}
        self.save_calls = 0
        self.load_calls = 0

    def save(self, user_id: str, data: Dict[str, Any]) -> None:
        self.save_calls += 1
        self._data[user_id] = copy.deepcopy(data)

    def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        self.load_calls += 1
        data = self._data.get(user_id)
        return copy.deepcopy(data) if data is not None else None

    def delete(self, user_id: str) -> None:
        self._data.pop(user_id, None)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._data


class JsonFilePersistenceAdapter(PersistenceAdapter):
    """One JSON file per user under ``directory``; writes are atomic (temp file + rename)."""

    def __init__(self, directory: str):
        self._directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, user_id: str) -> str:
        if not is_valid_user_id(user_id):
            raise ValueError(f"Unsafe user id for file storage: {user_id!r}")
        return os.path.join(self._directory, f"{user_id}.json")

    def save(self, user_id: str, data: Dict[str, Any]) -> None:
        path = self._path(user_id)
        fd, tmp_path = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"[Memory] Saved profile file for {user_id}")

    def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(user_id)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def delete(self, user_id: str) -> None:
        path = self._path(user_id)
        if os.path.exists(path):
            os.remove(path)
