"""Article read endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from vaultsync.api.deps import get_store
from vaultsync.pandoc.compiler import media_type_for
from vaultsync.schemas.article import ArticleListResponse, ArticleSummary
from vaultsync.services.article_service import (
    ArticleOrder,
    find_article,
    get_article_content,
    get_article_manifest,
    list_articles,
)
from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/article", tags=["articles"])


@router.get("/list", response_model=ArticleListResponse)
async def list_articles_endpoint(
    store: Annotated[ContentStore, Depends(get_store)],
    category: Annotated[str | None, Query(max_length=200)] = None,
    tag: Annotated[str | None, Query(max_length=200)] = None,
    order: ArticleOrder = ArticleOrder.CREATED,
) -> ArticleListResponse:
    """List visible articles, optionally filtered by category or tag."""
    manifest = await get_article_manifest(store)
    articles = list_articles(manifest, category=category, tag=tag, order=order)
    return ArticleListResponse(
        articles=[ArticleSummary.model_validate(a.model_dump()) for a in articles],
        total=len(articles),
        last_update=manifest.last_update,
    )


@router.get("/{slug}")
async def get_article_endpoint(
    slug: str,
    store: Annotated[ContentStore, Depends(get_store)],
) -> Response:
    """Return the cached document for ``slug``."""
    manifest = await get_article_manifest(store)
    article = find_article(manifest, slug)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    content = await get_article_content(store, article)
    return Response(
        content=content,
        media_type=media_type_for(manifest.format),
        headers={"ETag": f'"{article.content_hash}"'},
    )
