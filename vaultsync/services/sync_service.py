"""Sync orchestration: reconcile, fetch and publish each content type."""

from __future__ import annotations

import asyncio
import functools
import logging
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from vaultsync.exceptions import ManifestCorruptError
from vaultsync.schemas.manifest import (
    ArticleInfo,
    ArticleManifest,
    ImageInfo,
    ImageManifest,
    image_name,
)
from vaultsync.services.datetime_service import format_iso, now_utc
from vaultsync.services.manifest_service import load_article_manifest, load_image_manifest
from vaultsync.services.pipeline_service import (
    ArticlePipeline,
    FileFailure,
    FileSuccess,
    ImagePipeline,
    article_slug,
    run_bounded,
)
from vaultsync.services.publish_service import publish
from vaultsync.services.reconcile_service import reconcile
from vaultsync.storage.base import CacheKey

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from vaultsync.pandoc.compiler import DocumentCompiler
    from vaultsync.remote.base import RemoteRepositoryClient, TreeEntry
    from vaultsync.services.pipeline_service import FileResult
    from vaultsync.services.reconcile_service import ReconcilePlan
    from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)

ARTICLE_EXTENSIONS = (".md", ".markdown")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".svg", ".webp", ".avif")

InfoT = TypeVar("InfoT", ArticleInfo, ImageInfo)


@dataclass
class SyncSummary:
    """Outcome of one content type's sync run."""

    fetched: int = 0
    unchanged: int = 0
    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    delete_failed: int = 0
    failures: list[FileFailure] = field(default_factory=list)


@dataclass
class SyncReport:
    """Outcome of a full sync run."""

    started_at: str
    finished_at: str
    images: SyncSummary
    articles: SyncSummary

    @property
    def ok(self) -> bool:
        return not (
            self.images.failed
            or self.articles.failed
            or self.images.delete_failed
            or self.articles.delete_failed
        )


def article_tree(tree: Sequence[TreeEntry], article_root: str) -> list[TreeEntry]:
    """Markdown blobs below ``article_root``."""
    return [
        entry
        for entry in tree
        if entry.is_file
        and entry.path.startswith(article_root)
        and entry.path.lower().endswith(ARTICLE_EXTENSIONS)
    ]


def image_tree(tree: Sequence[TreeEntry], image_root: str) -> list[TreeEntry]:
    """Image blobs below ``image_root``."""
    return [
        entry
        for entry in tree
        if entry.is_file
        and entry.path.startswith(image_root)
        and posixpath.splitext(entry.path)[1].lower() in IMAGE_EXTENSIONS
    ]


def _image_key(source_path: str, _content_hash: str) -> str:
    return CacheKey.image(image_name(source_path))


def _article_key(_source_path: str, content_hash: str) -> str:
    return CacheKey.article_content(content_hash)


def _ordered(files: Sequence[TreeEntry], entries: list[InfoT]) -> list[InfoT]:
    by_path = {entry.source_path: entry for entry in entries}
    return [by_path[f.path] for f in files if f.path in by_path]


def _tally(
    plan: ReconcilePlan[InfoT], results: Sequence[FileResult]
) -> tuple[SyncSummary, list[InfoT]]:
    summary = SyncSummary(
        unchanged=len(plan.unchanged),
        deleted=len(plan.to_delete),
        skipped=len(plan.skipped),
    )
    admitted: list[InfoT] = []
    for result in results:
        if isinstance(result, FileSuccess):
            admitted.append(result.info)  # type: ignore[arg-type]
            summary.fetched += 1
        else:
            summary.failures.append(result)
            summary.failed += 1
    return summary, admitted


class SyncService:
    """Mirrors a remote repository snapshot into a content store.

    A full run holds the run lock from listing the tree until both manifests
    are published, so a run never publishes a listing older than one already
    published. Each content type also has its own lock, held from reading the
    current manifest until the new one is published.
    """

    def __init__(
        self,
        store: ContentStore,
        remote: RemoteRepositoryClient,
        compiler: DocumentCompiler,
        *,
        ref: str = "main",
        article_root: str = "Article/",
        image_root: str = "Attachment/",
        concurrency: int = 8,
        default_tz: str = "UTC",
        debug_dir: Path | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.compiler = compiler
        self.ref = ref
        self.article_root = article_root
        self.image_root = image_root
        self.concurrency = concurrency
        self._articles = ArticlePipeline(
            remote,
            store,
            compiler,
            article_root=article_root,
            default_tz=default_tz,
            debug_dir=debug_dir,
        )
        self._images = ImagePipeline(remote, store)
        self._run_lock = asyncio.Lock()
        self._article_lock = asyncio.Lock()
        self._image_lock = asyncio.Lock()
        self.last_report: SyncReport | None = None

    @property
    def is_running(self) -> bool:
        return (
            self._run_lock.locked() or self._article_lock.locked() or self._image_lock.locked()
        )

    async def sync(self) -> SyncReport:
        """Run one full sync: images first, so articles published after them resolve.

        Raises RemoteFetchError if the tree cannot be listed; nothing is
        written in that case.
        """
        async with self._run_lock:
            started_at = format_iso(now_utc())
            tree = await self.remote.list_tree(self.ref)
            logger.info("Listed %d tree entries at %s", len(tree), self.ref)

            images = await self.sync_images(tree)
            articles = await self.sync_articles(tree)
            report = SyncReport(
                started_at=started_at,
                finished_at=format_iso(now_utc()),
                images=images,
                articles=articles,
            )
            self.last_report = report
        logger.info(
            "Sync finished: articles fetched=%d unchanged=%d deleted=%d failed=%d; "
            "images fetched=%d unchanged=%d deleted=%d failed=%d skipped=%d",
            articles.fetched,
            articles.unchanged,
            articles.deleted,
            articles.failed,
            images.fetched,
            images.unchanged,
            images.deleted,
            images.failed,
            images.skipped,
        )
        return report

    async def sync_images(self, tree: Sequence[TreeEntry]) -> SyncSummary:
        files = image_tree(tree, self.image_root)
        async with self._image_lock:
            try:
                current = await load_image_manifest(self.store) or ImageManifest()
            except ManifestCorruptError as exc:
                logger.warning("Rebuilding image manifest from scratch: %s", exc)
                current = ImageManifest()

            plan = reconcile(
                files, current.entries, key_for=_image_key, relocate=ImageInfo.relocated
            )
            results = await run_bounded(
                plan.to_fetch, self._images.process, concurrency=self.concurrency
            )
            summary, admitted = _tally(plan, results)

            manifest = ImageManifest(
                entries=_ordered(files, [*plan.unchanged, *admitted]),
                last_update=format_iso(now_utc()),
            )
            pruned = await publish(self.store, manifest, plan.to_delete)
            summary.delete_failed = pruned.failed
        return summary

    async def sync_articles(self, tree: Sequence[TreeEntry]) -> SyncSummary:
        files = article_tree(tree, self.article_root)
        async with self._article_lock:
            try:
                current = await load_article_manifest(self.store) or ArticleManifest(
                    format=self.compiler.format
                )
            except ManifestCorruptError as exc:
                logger.warning("Rebuilding article manifest from scratch: %s", exc)
                current = ArticleManifest(format=self.compiler.format)

            force_refetch = bool(current.entries) and current.format != self.compiler.format
            if force_refetch:
                logger.info(
                    "Cached articles are %s, pipeline produces %s; recompiling all",
                    current.format,
                    self.compiler.format,
                )

            relocate = functools.partial(_relocate_article, article_root=self.article_root)
            plan = reconcile(
                files,
                current.entries,
                key_for=_article_key,
                relocate=relocate,
                force_refetch=force_refetch,
            )
            now = format_iso(now_utc())
            results = await run_bounded(
                plan.to_fetch,
                functools.partial(self._articles.process, now=now),
                concurrency=self.concurrency,
            )
            summary, admitted = _tally(plan, results)

            entries = _ordered(files, [*plan.unchanged, *admitted])
            _warn_duplicate_slugs(entries)
            manifest = ArticleManifest(
                entries=entries,
                last_update=format_iso(now_utc()),
                format=self.compiler.format,
            )
            pruned = await publish(self.store, manifest, plan.to_delete)
            summary.delete_failed = pruned.failed
        return summary


def _relocate_article(info: ArticleInfo, source_path: str, *, article_root: str) -> ArticleInfo:
    return info.relocated(source_path, slug=article_slug(source_path, article_root))


def _warn_duplicate_slugs(entries: Sequence[ArticleInfo]) -> None:
    seen: dict[str, str] = {}
    for entry in entries:
        other = seen.setdefault(entry.slug, entry.source_path)
        if other != entry.source_path:
            logger.warning(
                "Slug %r is shared by %s and %s; lookups resolve to the first",
                entry.slug,
                other,
                entry.source_path,
            )
