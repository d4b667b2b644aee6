"""Content store interface and key layout."""

from __future__ import annotations

from typing import Protocol


class ContentStore(Protocol):
    """Opaque key-value persistence used by the sync engine and the read API.

    Values are bytes. ``set`` replaces the whole value in one step, so a reader
    sees either the old value or the new one. Failures raise ``StoreError``.
    """

    async def get(self, key: str) -> bytes | None:
        """Return the value stored under ``key``, or None if absent."""
        ...

    async def set(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    async def remove(self, key: str) -> bool:
        """Delete ``key``. Returns True if the key existed."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class CacheKey:
    """Well-known store keys."""

    ARTICLE_MANIFEST = "manifests/articles.json"
    IMAGE_MANIFEST = "manifests/images.json"

    @staticmethod
    def article_content(content_hash: str) -> str:
        return f"articles/{content_hash}"

    @staticmethod
    def image(name: str) -> str:
        return f"images/{name}"
