"""
Sync Factory.
Wires the HubSpot client, the SQL-backed stores and the orchestrator from settings.
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hubsync.core.config import Settings, get_settings
from hubsync.db.session import get_session_maker
from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.services.action_repository import ActionRepository
from hubsync.services.domain_repository import DomainRepository
from hubsync.services.hubspot_sync.sync_orchestrator import HubSpotSyncOrchestrator, SyncRunResult

logger = logging.getLogger(__name__)


class SyncConfigurationError(Exception):
    """Raised when the HubSpot app credentials are not configured."""
    pass


def create_hubspot_client(settings: Optional[Settings] = None) -> HubSpotClient:
    """
    Build a HubSpot client from settings.

    Raises:
        SyncConfigurationError: If the OAuth app credentials are missing
    """
    settings = settings or get_settings()

    if not settings.hubspot_client_id:
        raise SyncConfigurationError("HUBSPOT_CLIENT_ID not configured")

    if not settings.hubspot_client_secret:
        raise SyncConfigurationError("HUBSPOT_CLIENT_SECRET not configured")

    return HubSpotClient(
        client_id=settings.hubspot_client_id,
        client_secret=settings.hubspot_client_secret,
        api_base_url=settings.hubspot_api_base_url,
        timeout=settings.hubspot_timeout_seconds,
    )


@lru_cache
def get_hubspot_client() -> HubSpotClient:
    """Process-wide HubSpot client, closed on application shutdown."""
    return create_hubspot_client()


def create_sync_orchestrator(
    client: Optional[HubSpotClient] = None,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[Settings] = None,
) -> HubSpotSyncOrchestrator:
    """Build an orchestrator over the SQL credential and event stores."""
    settings = settings or get_settings()
    session_maker = session_maker or get_session_maker()

    return HubSpotSyncOrchestrator(
        client=client or get_hubspot_client(),
        credential_store=DomainRepository(session_maker),
        event_store=ActionRepository(session_maker),
        tuning=settings.get_sync_tuning(),
        domain_api_key=settings.sync_domain_api_key,
    )


async def run_sync() -> SyncRunResult:
    """Run one full sync with the configured stores."""
    orchestrator = create_sync_orchestrator()
    return await orchestrator.run()
