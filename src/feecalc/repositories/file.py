"""JSON file backed key-value store for the CLI."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from feecalc.repositories.base import KeyValueStore

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore(KeyValueStore):
    """Persist all keys in a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_locked(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Store %s is not a JSON object; ignoring it", self.path)
            return {}
        return data

    def _write_locked(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_locked().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_locked()
            data[key] = value
            self._write_locked(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_locked()
            if data.pop(key, None) is not None:
                self._write_locked(data)
