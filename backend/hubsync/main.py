"""
HubSync - FastAPI Application Entry Point

Daily incremental sync of HubSpot CRM records into the action event store.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hubsync import __version__
from hubsync.api.endpoints import health, sync
from hubsync.core.config import get_settings
from hubsync.core.logging_config import configure_logging
from hubsync.db.session import get_engine, init_database
from hubsync.services.scheduler import SyncScheduler
from hubsync.services.sync_factory import get_hubspot_client, run_sync

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    # Startup
    configure_logging(settings.log_level)
    logger.info("🚀 Starting HubSync...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Debug Mode: {settings.app_debug}")

    await init_database()
    logger.info("✅ Database tables initialized")

    scheduler = None
    if settings.sync_schedule_enabled:
        scheduler = SyncScheduler(
            run_sync,
            hour=settings.sync_schedule_hour,
            minute=settings.sync_schedule_minute,
        )
        scheduler.start()
        logger.info(f"✅ Daily sync scheduled, next run at {scheduler.next_run_time()}")
    else:
        logger.info("ℹ️ Daily sync disabled (SYNC_SCHEDULE_ENABLED=false)")
    app.state.scheduler = scheduler

    logger.info("✅ Startup complete! Ready to accept requests.")

    yield

    # Shutdown
    logger.info("👋 Shutting down HubSync...")
    if scheduler is not None:
        scheduler.shutdown()

    # The client only exists once a sync has run
    if get_hubspot_client.cache_info().currsize:
        await get_hubspot_client().close()
        get_hubspot_client.cache_clear()

    await get_engine().dispose()
    logger.info("✅ Shutdown complete")


app = FastAPI(
    title="HubSync",
    description="Incremental HubSpot CRM sync worker",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(sync.router, prefix="/api/v1", tags=["Sync"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "HubSync",
        "version": __version__,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check with the scheduling configuration."""
    scheduler = getattr(app.state, "scheduler", None)
    next_run = scheduler.next_run_time() if scheduler else None
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "components": {
            "api": "ok",
            "scheduler": "running" if scheduler and scheduler.running else "disabled",
        },
        "next_sync_at": next_run.isoformat() if next_run else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hubsync.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )
