"""Content pipeline: fetch, transform and store one file at a time.

Every worker writes its content to the store before reporting success, so
an entry can only reach a published manifest once its content is readable.
Any per-file failure is returned as ``FileFailure`` instead of raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import yaml

from vaultsync.exceptions import StoreError
from vaultsync.markdown.frontmatter import article_relative_path, parse_article
from vaultsync.markdown.links import rewrite_wiki_images
from vaultsync.pandoc.compiler import CompileError
from vaultsync.remote.base import RemoteFetchError
from vaultsync.schemas.manifest import ArticleInfo, ImageInfo, image_name
from vaultsync.services.slug_service import generate_slug
from vaultsync.storage.base import CacheKey

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from pathlib import Path

    from vaultsync.pandoc.compiler import DocumentCompiler
    from vaultsync.remote.base import RemoteRepositoryClient
    from vaultsync.services.reconcile_service import FetchItem
    from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_EXPECTED_FAILURES = (
    RemoteFetchError,
    CompileError,
    StoreError,
    UnicodeDecodeError,
    yaml.YAMLError,
    ValueError,
)


@dataclass(frozen=True)
class FileSuccess:
    """A file fetched, transformed and stored."""

    info: ArticleInfo | ImageInfo


@dataclass(frozen=True)
class FileFailure:
    """A file that could not be processed; it is retried on the next sync."""

    source_path: str
    reason: str


FileResult = FileSuccess | FileFailure


def article_slug(source_path: str, article_root: str) -> str:
    """Slug of an article, derived from its path below the article root."""
    return generate_slug(article_relative_path(source_path, article_root))


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    concurrency: int,
) -> list[R]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Results come back in input order.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _bounded(item: T) -> R:
        async with semaphore:
            return await worker(item)

    return await asyncio.gather(*(_bounded(item) for item in items))


def _failure(kind: str, path: str, exc: Exception) -> FileFailure:
    if isinstance(exc, _EXPECTED_FAILURES):
        logger.warning("Skipping %s %s: %s", kind, path, exc)
    else:
        logger.error("Unexpected error processing %s %s", kind, path, exc_info=exc)
    return FileFailure(source_path=path, reason=f"{type(exc).__name__}: {exc}")


async def _dump_markdown(debug_dir: Path, content_hash: str, body: str) -> None:
    """Write processed markdown to <debug_dir>/<hash>.md for inspection."""
    target = debug_dir / f"{content_hash}.md"
    try:
        await asyncio.to_thread(debug_dir.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, body, encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write debug dump %s: %s", target, exc)


class ArticlePipeline:
    """Turns a markdown blob into a cached document and its manifest entry."""

    def __init__(
        self,
        remote: RemoteRepositoryClient,
        store: ContentStore,
        compiler: DocumentCompiler,
        *,
        article_root: str,
        default_tz: str = "UTC",
        debug_dir: Path | None = None,
    ) -> None:
        self.remote = remote
        self.store = store
        self.compiler = compiler
        self.article_root = article_root
        self.default_tz = default_tz
        self.debug_dir = debug_dir

    async def process(self, item: FetchItem[ArticleInfo], now: str) -> FileResult:
        path = item.entry.path
        try:
            info = await self._process(item, now)
        except Exception as exc:
            return _failure("article", path, exc)
        logger.info("Cached article %s as %s", path, info.slug)
        return FileSuccess(info=info)

    async def _process(self, item: FetchItem[ArticleInfo], now: str) -> ArticleInfo:
        entry = item.entry
        raw = await self.remote.get_raw_content(entry)
        previous = item.previous
        metadata = parse_article(
            raw.decode("utf-8"),
            entry.path,
            article_root=self.article_root,
            now=now,
            previous_created_at=previous.created_at if previous is not None else None,
            default_tz=self.default_tz,
        )
        body = rewrite_wiki_images(metadata.body)
        if self.debug_dir is not None:
            await _dump_markdown(self.debug_dir, entry.content_hash, body)

        document = await self.compiler.compile(body)
        await self.store.set(CacheKey.article_content(entry.content_hash), document)

        return ArticleInfo(
            name=metadata.title,
            slug=article_slug(entry.path, self.article_root),
            source_path=entry.path,
            content_hash=entry.content_hash,
            description=metadata.description,
            category=metadata.category,
            tags=metadata.tags,
            created_at=metadata.created_at,
            updated_at=metadata.updated_at,
            hidden=metadata.hidden,
        )


class ImagePipeline:
    """Copies an image blob into the store under its sanitized name."""

    def __init__(self, remote: RemoteRepositoryClient, store: ContentStore) -> None:
        self.remote = remote
        self.store = store

    async def process(self, item: FetchItem[ImageInfo]) -> FileResult:
        entry = item.entry
        name = image_name(entry.path)
        if not name:
            return FileFailure(source_path=entry.path, reason="empty file name")
        try:
            data = await self.remote.get_file_bytes(entry)
            await self.store.set(CacheKey.image(name), data)
        except Exception as exc:
            return _failure("image", entry.path, exc)
        logger.info("Cached image %s as %s (%d bytes)", entry.path, name, len(data))
        return FileSuccess(
            info=ImageInfo(name=name, content_hash=entry.content_hash, source_path=entry.path)
        )
