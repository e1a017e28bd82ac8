"""Key-value store interface used by invoice and settings persistence."""

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """String key-value persistence; values are JSON documents."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...
