"""Sync API endpoints: trigger a run and inspect the last report."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from vaultsync.api.deps import get_sync_service, require_sync_token
from vaultsync.services.sync_service import SyncService

if TYPE_CHECKING:
    from vaultsync.services.sync_service import SyncReport, SyncSummary

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/sync",
    tags=["sync"],
    dependencies=[Depends(require_sync_token)],
)


# ── Schemas ──────────────────────────────────────────


class FailureInfo(BaseModel):
    """A file skipped because it could not be processed."""

    source_path: str
    reason: str


class SyncSummaryResponse(BaseModel):
    """Counts for one content type."""

    fetched: int
    unchanged: int
    deleted: int
    failed: int
    skipped: int
    delete_failed: int
    failures: list[FailureInfo] = Field(default_factory=list)


class SyncReportResponse(BaseModel):
    """Outcome of a sync run."""

    ok: bool
    started_at: str
    finished_at: str
    articles: SyncSummaryResponse
    images: SyncSummaryResponse


class SyncStatusResponse(BaseModel):
    running: bool
    last_report: SyncReportResponse | None = None


def _summary_response(summary: SyncSummary) -> SyncSummaryResponse:
    return SyncSummaryResponse(
        fetched=summary.fetched,
        unchanged=summary.unchanged,
        deleted=summary.deleted,
        failed=summary.failed,
        skipped=summary.skipped,
        delete_failed=summary.delete_failed,
        failures=[
            FailureInfo(source_path=f.source_path, reason=f.reason) for f in summary.failures
        ],
    )


def report_response(report: SyncReport) -> SyncReportResponse:
    return SyncReportResponse(
        ok=report.ok,
        started_at=report.started_at,
        finished_at=report.finished_at,
        articles=_summary_response(report.articles),
        images=_summary_response(report.images),
    )


# ── Endpoints ────────────────────────────────────────


@router.post("", response_model=SyncReportResponse)
async def trigger_sync(
    sync_service: Annotated[SyncService, Depends(get_sync_service)],
) -> SyncReportResponse:
    """Run a sync now and return its report.

    Rejected with 409 while another run is in progress.
    """
    if sync_service.is_running:
        raise HTTPException(status_code=409, detail="A sync is already running")
    logger.info("Sync triggered via API")
    report = await sync_service.sync()
    return report_response(report)


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    sync_service: Annotated[SyncService, Depends(get_sync_service)],
) -> SyncStatusResponse:
    """Whether a sync is running, and the report of the last completed one."""
    last = sync_service.last_report
    return SyncStatusResponse(
        running=sync_service.is_running,
        last_report=report_response(last) if last is not None else None,
    )
