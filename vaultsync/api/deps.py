"""Shared API dependencies: settings, runtime collaborators, sync token auth."""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vaultsync.config import Settings
from vaultsync.runtime import Runtime
from vaultsync.services.sync_service import SyncService
from vaultsync.storage.base import ContentStore

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_runtime(request: Request) -> Runtime:
    """Get the runtime opened by the application lifespan."""
    runtime: Runtime | None = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting",
        )
    return runtime


def get_store(runtime: Annotated[Runtime, Depends(get_runtime)]) -> ContentStore:
    return runtime.store


def get_sync_service(runtime: Annotated[Runtime, Depends(get_runtime)]) -> SyncService:
    return runtime.sync_service


def require_sync_token(
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> None:
    """Require the configured sync bearer token.

    With no token configured the sync endpoints are disabled entirely.
    """
    if not settings.sync_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sync endpoints are disabled",
        )
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), settings.sync_token.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sync token",
            headers={"WWW-Authenticate": "Bearer"},
        )
