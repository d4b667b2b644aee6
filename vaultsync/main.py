"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from vaultsync.api.articles import router as articles_router
from vaultsync.api.health import router as health_router
from vaultsync.api.images import router as images_router
from vaultsync.api.sync import router as sync_router
from vaultsync.config import Settings
from vaultsync.exceptions import InternalServerError, StoreError
from vaultsync.pandoc.compiler import CompileError
from vaultsync.remote.base import RemoteFetchError
from vaultsync.runtime import open_runtime

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from vaultsync.runtime import Runtime

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)


async def _startup_sync(runtime: Runtime) -> None:
    """Initial sync in the background; the API serves the previous cache meanwhile."""
    try:
        report = await runtime.sync_service.sync()
    except (RemoteFetchError, StoreError) as exc:
        logger.error("Startup sync failed, serving the existing cache: %s", exc)
        return
    if not report.ok:
        logger.warning("Startup sync finished with failures; they are retried on the next sync")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    _configure_logging(settings.debug)
    settings.validate_runtime()
    logger.info("Starting VaultSync (debug=%s)", settings.debug)

    async with contextlib.AsyncExitStack() as stack:
        owns_runtime = app.state.runtime is None
        if owns_runtime:
            try:
                app.state.runtime = await stack.enter_async_context(open_runtime(settings))
            except Exception as exc:
                logger.critical("Failed to initialize runtime: %s", exc)
                raise
        runtime: Runtime = app.state.runtime

        sync_task: asyncio.Task[None] | None = None
        if settings.sync_on_startup:
            sync_task = asyncio.create_task(_startup_sync(runtime), name="vaultsync-startup-sync")

        yield

        if sync_task is not None and not sync_task.done():
            logger.info("Cancelling startup sync")
            sync_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sync_task

    if owns_runtime:
        app.state.runtime = None
    logger.info("VaultSync stopped")


def create_app(settings: Settings | None = None, runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A prebuilt ``runtime`` is used as-is and left open on shutdown; otherwise
    the lifespan opens one from ``settings``.
    """
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="VaultSync",
        description="Cached read API over a git-hosted markdown vault",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.runtime = runtime

    app.add_middleware(GZipMiddleware, minimum_size=500)

    cors_origins = (
        settings.cors_origins
        if settings.cors_origins
        else (["http://localhost:3000", "http://localhost:8000"] if settings.debug else [])
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )

    trusted_hosts = settings.trusted_hosts or (
        ["localhost", "127.0.0.1", "::1", "test", "testserver"] if settings.debug else []
    )
    if trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

    app.include_router(health_router)
    app.include_router(articles_router)
    app.include_router(images_router)
    app.include_router(sync_router)

    # Global exception handlers

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(InternalServerError)
    async def internal_server_error_handler(
        request: Request, exc: InternalServerError
    ) -> JSONResponse:
        logger.error(
            "%s in %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(
            "StoreError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage operation failed"},
        )

    @app.exception_handler(RemoteFetchError)
    async def remote_error_handler(request: Request, exc: RemoteFetchError) -> JSONResponse:
        logger.error(
            "RemoteFetchError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=502,
            content={"detail": "Source repository unavailable"},
        )

    @app.exception_handler(CompileError)
    async def compile_error_handler(request: Request, exc: CompileError) -> JSONResponse:
        logger.error(
            "CompileError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=502,
            content={"detail": "Document compiler unavailable"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "vaultsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
