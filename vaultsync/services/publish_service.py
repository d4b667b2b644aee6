"""Publishing: replace a manifest, then prune content it no longer references."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vaultsync.exceptions import StoreError
from vaultsync.services.manifest_service import save_manifest

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vaultsync.schemas.manifest import ArticleInfo, ArticleManifest, ImageInfo, ImageManifest
    from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    removed: int = 0
    failed: int = 0


async def publish(
    store: ContentStore,
    manifest: ArticleManifest | ImageManifest,
    to_delete: Sequence[ArticleInfo | ImageInfo],
) -> PruneResult:
    """Write ``manifest`` and then remove the content of ``to_delete`` entries.

    The manifest goes first: until it is replaced, readers still resolve the
    old entries, so their content must survive that long. Keys the new
    manifest still references are never removed. Removal failures are logged
    and counted; a failed write of the manifest itself propagates.
    """
    await save_manifest(store, manifest)

    referenced = {entry.storage_key for entry in manifest.entries}
    result = PruneResult()
    pruned: set[str] = set()
    for entry in to_delete:
        key = entry.storage_key
        if key in referenced or key in pruned:
            continue
        pruned.add(key)
        try:
            existed = await store.remove(key)
        except StoreError as exc:
            logger.warning("Could not prune %s (%s): %s", key, entry.source_path, exc)
            result.failed += 1
            continue
        if not existed:
            logger.debug("Pruned key %s was already gone", key)
        result.removed += 1
    return result
