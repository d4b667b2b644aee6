"""Loading and saving manifests in the content store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from pydantic import ValidationError

from vaultsync.exceptions import ManifestCorruptError
from vaultsync.schemas.manifest import ArticleManifest, ImageManifest
from vaultsync.storage.base import CacheKey

if TYPE_CHECKING:
    from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)

M = TypeVar("M", ArticleManifest, ImageManifest)


async def _load(store: ContentStore, key: str, model: type[M]) -> M | None:
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise ManifestCorruptError(f"Manifest {key} is corrupt: {exc}") from exc


async def load_article_manifest(store: ContentStore) -> ArticleManifest | None:
    """Return the current article manifest, or None if none was ever published.

    Raises ManifestCorruptError if the stored manifest cannot be parsed.
    """
    return await _load(store, CacheKey.ARTICLE_MANIFEST, ArticleManifest)


async def load_image_manifest(store: ContentStore) -> ImageManifest | None:
    """Return the current image manifest, or None if none was ever published.

    Raises ManifestCorruptError if the stored manifest cannot be parsed.
    """
    return await _load(store, CacheKey.IMAGE_MANIFEST, ImageManifest)


async def save_manifest(store: ContentStore, manifest: ArticleManifest | ImageManifest) -> None:
    """Replace the manifest of its kind with one store write."""
    if isinstance(manifest, ArticleManifest):
        key = CacheKey.ARTICLE_MANIFEST
    else:
        key = CacheKey.IMAGE_MANIFEST
    await store.set(key, manifest.model_dump_json().encode("utf-8"))
    logger.debug("Published %s with %d entries", key, len(manifest.entries))
