"""Read-side lookup of cached images."""

from __future__ import annotations

import mimetypes
import posixpath
from typing import TYPE_CHECKING

from vaultsync.exceptions import ContentMissingError
from vaultsync.services.manifest_service import load_image_manifest
from vaultsync.services.slug_service import sanitize_file_name

if TYPE_CHECKING:
    from vaultsync.schemas.manifest import ImageInfo
    from vaultsync.storage.base import ContentStore


async def find_image(store: ContentStore, name: str) -> ImageInfo | None:
    """Manifest entry for an image name, or None.

    The name is sanitized first, so both ``My Photo.png`` and ``my-photo.png``
    resolve. Raises ManifestCorruptError if the image manifest cannot be parsed.
    """
    manifest = await load_image_manifest(store)
    if manifest is None:
        return None
    wanted = sanitize_file_name(name)
    for entry in manifest.entries:
        if entry.name == wanted:
            return entry
    return None


async def get_image_bytes(store: ContentStore, image: ImageInfo) -> bytes:
    """Raises ContentMissingError if the manifest references bytes the store lacks."""
    data = await store.get(image.storage_key)
    if data is None:
        raise ContentMissingError(f"Image {image.storage_key} is missing from the store")
    return data


_EXTRA_TYPES = {".webp": "image/webp", ".avif": "image/avif", ".svg": "image/svg+xml"}


def guess_media_type(name: str) -> str:
    media_type, _ = mimetypes.guess_type(name)
    if media_type is None:
        media_type = _EXTRA_TYPES.get(posixpath.splitext(name)[1].lower())
    return media_type or "application/octet-stream"
