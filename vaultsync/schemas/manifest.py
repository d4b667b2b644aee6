"""Manifest schemas: the persisted index of cached articles and images."""

from __future__ import annotations

import posixpath
from typing import Literal

from pydantic import BaseModel, Field

from vaultsync.services.slug_service import extract_file_name, sanitize_file_name
from vaultsync.storage.base import CacheKey

ContentFormat = Literal["raw", "pandoc-json"]


class ArticleInfo(BaseModel):
    """One cached article."""

    name: str
    slug: str
    source_path: str
    content_hash: str
    description: str = ""
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
    hidden: bool = False

    @property
    def storage_key(self) -> str:
        return CacheKey.article_content(self.content_hash)

    def relocated(self, source_path: str, *, slug: str) -> ArticleInfo:
        """Copy of this entry moved to ``source_path``.

        Path-derived fields follow the move; a title taken from front matter
        and all timestamps are kept.
        """
        if source_path == self.source_path and slug == self.slug:
            return self
        name = self.name
        if name == extract_file_name(self.source_path):
            name = extract_file_name(source_path)
        return self.model_copy(update={"source_path": source_path, "slug": slug, "name": name})


class ImageInfo(BaseModel):
    """One cached image attachment."""

    name: str
    content_hash: str
    source_path: str

    @property
    def storage_key(self) -> str:
        return CacheKey.image(self.name)

    def relocated(self, source_path: str) -> ImageInfo:
        if source_path == self.source_path:
            return self
        return self.model_copy(
            update={"source_path": source_path, "name": image_name(source_path)}
        )


def image_name(source_path: str) -> str:
    """Sanitized file name an image is cached and served under."""
    return sanitize_file_name(posixpath.basename(source_path))


class ArticleManifest(BaseModel):
    """Current set of cached articles."""

    entries: list[ArticleInfo] = Field(default_factory=list)
    last_update: str = ""
    format: ContentFormat = "raw"


class ImageManifest(BaseModel):
    """Current set of cached images."""

    entries: list[ImageInfo] = Field(default_factory=list)
    last_update: str = ""
