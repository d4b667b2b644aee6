"""Article API schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ArticleSummary(BaseModel):
    """Article metadata as listed by the read API."""

    name: str
    slug: str
    description: str = ""
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class ArticleListResponse(BaseModel):
    """Visible articles, newest first."""

    articles: list[ArticleSummary]
    total: int
    last_update: str
