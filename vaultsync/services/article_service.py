"""Read-side queries over the published article manifest."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from vaultsync.exceptions import ContentMissingError, InternalServerError
from vaultsync.services.datetime_service import sort_key
from vaultsync.services.manifest_service import load_article_manifest

if TYPE_CHECKING:
    from vaultsync.schemas.manifest import ArticleInfo, ArticleManifest
    from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)


class ArticleOrder(StrEnum):
    """Listing order; both are newest first."""

    CREATED = "created"
    UPDATED = "updated"


async def get_article_manifest(store: ContentStore) -> ArticleManifest:
    """Load the published article manifest.

    Raises InternalServerError if no manifest has been published yet and
    ManifestCorruptError if it cannot be parsed.
    """
    manifest = await load_article_manifest(store)
    if manifest is None:
        raise InternalServerError("Article manifest has not been published yet")
    return manifest


def list_articles(
    manifest: ArticleManifest,
    *,
    category: str | None = None,
    tag: str | None = None,
    order: ArticleOrder = ArticleOrder.CREATED,
) -> list[ArticleInfo]:
    """Visible articles, optionally filtered, newest first.

    Category and tag filters are case-insensitive exact matches. Ties keep
    manifest order.
    """
    articles = [entry for entry in manifest.entries if not entry.hidden]
    if category:
        wanted = category.casefold()
        articles = [a for a in articles if (a.category or "").casefold() == wanted]
    if tag:
        wanted_tag = tag.casefold()
        articles = [a for a in articles if any(t.casefold() == wanted_tag for t in a.tags)]

    if order == ArticleOrder.UPDATED:
        articles.sort(key=lambda a: sort_key(a.updated_at), reverse=True)
    else:
        articles.sort(key=lambda a: sort_key(a.created_at), reverse=True)
    return articles


def find_article(manifest: ArticleManifest, slug: str) -> ArticleInfo | None:
    """Look up an article by slug. Hidden articles are found too."""
    for entry in manifest.entries:
        if entry.slug == slug:
            return entry
    return None


async def get_article_content(store: ContentStore, article: ArticleInfo) -> bytes:
    """Cached content of ``article``.

    Raises ContentMissingError if the manifest references content the store lacks.
    """
    content = await store.get(article.storage_key)
    if content is None:
        raise ContentMissingError(
            f"Content {article.storage_key} for {article.source_path} is missing from the store"
        )
    return content
