"""In-memory key-value store for the API process and tests."""

from __future__ import annotations

import threading
from typing import Optional

from feecalc.repositories.base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Thread-safe in-memory storage."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Reset all in-memory state (used by tests)."""
        with self._lock:
            self._values: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
