"""Runtime wiring: builds and tears down the store, remote client and compiler."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vaultsync.pandoc.compiler import PandocCompiler, RawCompiler
from vaultsync.pandoc.server import PandocServer
from vaultsync.remote.git_local import LocalGitClient
from vaultsync.remote.github import GitHubClient
from vaultsync.services.sync_service import SyncService
from vaultsync.storage.disk import FileStore
from vaultsync.storage.memory import MemoryStore
from vaultsync.storage.sql import SqlStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from vaultsync.config import Settings
    from vaultsync.pandoc.compiler import DocumentCompiler
    from vaultsync.remote.base import RemoteRepositoryClient
    from vaultsync.storage.base import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Live collaborators of one application or CLI run."""

    store: ContentStore
    remote: RemoteRepositoryClient
    compiler: DocumentCompiler
    sync_service: SyncService
    pandoc_server: PandocServer | None = None


async def open_store(settings: Settings) -> ContentStore:
    """Create and initialize the configured content store."""
    if settings.store_backend == "disk":
        file_store = FileStore(settings.store_dir)
        file_store.init()
        return file_store
    if settings.store_backend == "sql":
        sql_store = SqlStore.from_url(settings.database_url, echo=settings.debug)
        await sql_store.init()
        return sql_store
    return MemoryStore()


def build_remote(settings: Settings) -> RemoteRepositoryClient:
    """Create the configured remote repository client."""
    if settings.remote_backend == "git":
        if settings.local_repo_dir is None:
            raise ValueError("LOCAL_REPO_DIR must be set for the git backend")
        return LocalGitClient(settings.local_repo_dir, ref=settings.remote_ref)
    return GitHubClient(
        settings.github_owner,
        settings.github_repo,
        ref=settings.remote_ref,
        token=settings.github_token,
        api_url=settings.github_api_url,
        timeout=settings.remote_timeout,
    )


async def _shutdown(runtime: Runtime) -> None:
    try:
        await runtime.compiler.close()
    except Exception as exc:
        logger.error("Error during compiler shutdown: %s", exc, exc_info=True)

    if runtime.pandoc_server is not None:
        try:
            await runtime.pandoc_server.stop()
        except Exception as exc:
            logger.error("Error during pandoc server shutdown: %s", exc, exc_info=True)

    try:
        await runtime.remote.close()
    except Exception as exc:
        logger.error("Error during remote client shutdown: %s", exc, exc_info=True)

    try:
        await runtime.store.close()
    except Exception as exc:
        logger.error("Error during store shutdown: %s", exc, exc_info=True)


@asynccontextmanager
async def open_runtime(settings: Settings) -> AsyncGenerator[Runtime]:
    """Build every collaborator from ``settings`` and close them on exit.

    In document mode a ``pandoc server`` is started first; failing to start
    it aborts startup.
    """
    remote = build_remote(settings)
    try:
        store = await open_store(settings)
    except Exception:
        await remote.close()
        raise

    pandoc_server: PandocServer | None = None
    compiler: DocumentCompiler
    if settings.pipeline_mode == "document":
        pandoc_server = PandocServer(port=settings.pandoc_port, timeout=settings.pandoc_timeout)
        try:
            await pandoc_server.start()
        except Exception as exc:
            logger.critical("Failed to start pandoc server: %s", exc)
            await remote.close()
            await store.close()
            raise
        compiler = PandocCompiler(pandoc_server, timeout=float(settings.pandoc_timeout))
    else:
        compiler = RawCompiler()

    sync_service = SyncService(
        store,
        remote,
        compiler,
        ref=settings.remote_ref,
        article_root=settings.article_root,
        image_root=settings.image_root,
        concurrency=settings.sync_concurrency,
        default_tz=settings.default_timezone,
        debug_dir=settings.debug_dir,
    )
    runtime = Runtime(
        store=store,
        remote=remote,
        compiler=compiler,
        sync_service=sync_service,
        pandoc_server=pandoc_server,
    )
    logger.info(
        "Runtime ready: store=%s remote=%s pipeline=%s",
        settings.store_backend,
        settings.remote_backend,
        compiler.format,
    )
    try:
        yield runtime
    finally:
        await _shutdown(runtime)
