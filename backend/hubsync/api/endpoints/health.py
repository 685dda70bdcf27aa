"""
Health and Status Endpoints for Monitoring.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from hubsync.db.session import get_async_session

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database_connected: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> HealthResponse:
    """
    Health check including database connectivity.

    Returns:
        Health status
    """
    try:
        await session.execute(text("SELECT 1"))
        return HealthResponse(status="healthy", database_connected=True)

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return HealthResponse(status="unhealthy", database_connected=False)
