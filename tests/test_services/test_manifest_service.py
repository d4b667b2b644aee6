"""Tests for manifest persistence."""

from __future__ import annotations

import json

import pytest

from vaultsync.exceptions import InternalServerError, ManifestCorruptError
from vaultsync.schemas.manifest import ArticleInfo, ArticleManifest, ImageInfo, ImageManifest
from vaultsync.services.manifest_service import (
    load_article_manifest,
    load_image_manifest,
    save_manifest,
)
from vaultsync.storage.base import CacheKey
from vaultsync.storage.memory import MemoryStore


def _article(**overrides: object) -> ArticleInfo:
    fields: dict[str, object] = {
        "name": "Post",
        "slug": "post",
        "source_path": "Article/Post.md",
        "content_hash": "abc",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return ArticleInfo.model_validate(fields)


class TestLoadSave:
    async def test_missing_manifest_is_none(self, store: MemoryStore) -> None:
        assert await load_article_manifest(store) is None
        assert await load_image_manifest(store) is None

    async def test_round_trip_keeps_entries(self, store: MemoryStore) -> None:
        manifest = ArticleManifest(
            entries=[_article(tags=["x"], hidden=True)],
            last_update="2024-02-02T00:00:00+00:00",
            format="pandoc-json",
        )
        await save_manifest(store, manifest)

        assert await load_article_manifest(store) == manifest

    async def test_kinds_use_separate_keys(self, store: MemoryStore) -> None:
        await save_manifest(store, ArticleManifest(entries=[_article()]))
        await save_manifest(
            store,
            ImageManifest(entries=[ImageInfo(name="a.png", content_hash="h", source_path="a.png")]),
        )

        assert store.keys() == [CacheKey.ARTICLE_MANIFEST, CacheKey.IMAGE_MANIFEST]

    async def test_stored_as_json(self, store: MemoryStore) -> None:
        await save_manifest(store, ArticleManifest(entries=[_article()]))
        raw = await store.get(CacheKey.ARTICLE_MANIFEST)
        assert raw is not None
        assert json.loads(raw)["entries"][0]["slug"] == "post"

    async def test_manifest_without_format_reads_as_raw(self, store: MemoryStore) -> None:
        await store.set(CacheKey.ARTICLE_MANIFEST, b'{"entries": [], "last_update": ""}')
        manifest = await load_article_manifest(store)
        assert manifest is not None
        assert manifest.format == "raw"

    @pytest.mark.parametrize(
        "payload",
        [b"not json", b'{"entries": "nope"}', b'{"entries": [{"name": "x"}]}'],
    )
    async def test_corrupt_manifest_raises(self, store: MemoryStore, payload: bytes) -> None:
        await store.set(CacheKey.ARTICLE_MANIFEST, payload)
        with pytest.raises(ManifestCorruptError):
            await load_article_manifest(store)

    def test_corrupt_is_internal_error(self) -> None:
        assert issubclass(ManifestCorruptError, InternalServerError)


class TestRelocation:
    def test_file_name_title_follows_rename(self) -> None:
        moved = _article().relocated("Article/Renamed.md", slug="renamed")
        assert (moved.name, moved.slug, moved.source_path) == (
            "Renamed",
            "renamed",
            "Article/Renamed.md",
        )

    def test_same_location_returns_self(self) -> None:
        entry = _article()
        assert entry.relocated("Article/Post.md", slug="post") is entry

    def test_storage_keys(self) -> None:
        assert _article().storage_key == "articles/abc"
        image = ImageInfo(name="a.png", content_hash="h", source_path="Attachment/A.png")
        assert image.storage_key == "images/a.png"
