"""
Sync API Endpoints.
Manual sync trigger and real-time sync progress monitoring.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel

from hubsync.services.scheduler import SyncRunner, run_scheduled_sync
from hubsync.services.sync_factory import run_sync
from hubsync.services.sync_status import sync_status

router = APIRouter()
logger = logging.getLogger(__name__)


class SyncStatusResponse(BaseModel):
    """Sync status response."""
    phase: str
    started_at: str | None
    current_step: str
    progress: Dict[str, Any]
    errors: list
    completed_at: str | None
    duration_seconds: float
    is_running: bool


class SyncTriggerResponse(BaseModel):
    """Response of a manual sync trigger."""
    status: str
    message: str


def get_sync_runner() -> SyncRunner:
    """Dependency returning the coroutine that runs one sync."""
    return run_sync


@router.get("/sync-status", response_model=SyncStatusResponse)
async def get_sync_status() -> SyncStatusResponse:
    """
    Get current sync status.

    Poll every few seconds while a sync runs.

    Returns:
        Current sync status with progress details
    """
    current = sync_status.get_status()

    return SyncStatusResponse(
        phase=current["phase"],
        started_at=current["started_at"],
        current_step=current["current_step"],
        progress=current["progress"],
        errors=current["errors"],
        completed_at=current["completed_at"],
        duration_seconds=current["duration_seconds"],
        is_running=sync_status.is_running(),
    )


@router.post("/sync", response_model=SyncTriggerResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_sync(
    background_tasks: BackgroundTasks,
    runner: Annotated[SyncRunner, Depends(get_sync_runner)],
) -> SyncTriggerResponse:
    """
    Start a HubSpot sync outside the daily schedule.

    The run happens in the background; follow it through /sync-status.

    Raises:
        HTTPException 409: If a sync is already running
    """
    if sync_status.is_running():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A sync is already running",
        )

    logger.info("🔄 Manual HubSpot sync requested")
    background_tasks.add_task(run_scheduled_sync, runner)

    return SyncTriggerResponse(
        status="accepted",
        message="Sync started, poll /api/v1/sync-status for progress",
    )
