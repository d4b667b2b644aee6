"""In-process content store."""

from __future__ import annotations


class MemoryStore:
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def close(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        """Sorted snapshot of stored keys."""
        return sorted(self._data)
