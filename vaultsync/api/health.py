"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vaultsync.api.deps import get_runtime
from vaultsync.exceptions import ManifestCorruptError, StoreError
from vaultsync.runtime import Runtime
from vaultsync.services.manifest_service import load_article_manifest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    store: str
    last_update: str | None = None
    sync_running: bool = False


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    store_status = "ok"
    last_update: str | None = None
    try:
        manifest = await load_article_manifest(runtime.store)
        if manifest is None:
            store_status = "empty"
        else:
            last_update = manifest.last_update
    except (StoreError, ManifestCorruptError):
        logger.warning("Health check could not read the article manifest", exc_info=True)
        store_status = "error"

    return HealthResponse(
        status="degraded" if store_status == "error" else "ok",
        version="0.1.0",
        store=store_status,
        last_update=last_update,
        sync_running=runtime.sync_service.is_running,
    )
