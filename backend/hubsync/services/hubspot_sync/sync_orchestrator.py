"""
HubSpot Sync Orchestrator.

Coordinates one sync run: loads the tenant, then walks its connected
accounts one after another.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from hubsync.core.config import SyncTuning
from hubsync.core.interfaces.stores import CredentialStore, EventStore
from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.models.domain import Domain, HubspotAccount
from hubsync.services.hubspot_sync.action_batcher import ActionBatcher
from hubsync.services.hubspot_sync.associations import AssociationResolver
from hubsync.services.hubspot_sync.credentials import CredentialRefresher
from hubsync.services.hubspot_sync.error_tracker import ErrorTracker
from hubsync.services.hubspot_sync.paginators import PAGINATOR_CLASSES, ObjectPaginator
from hubsync.services.hubspot_sync.retry import RetryExecutor
from hubsync.services.hubspot_sync.session import AccountSession
from hubsync.services.sync_status import SyncPhase, SyncStatusTracker, sync_status

logger = logging.getLogger(__name__)

# Contacts first so companies and meetings land in the same flushes
SYNC_ORDER = ("contacts", "companies", "meetings")


@dataclass
class AccountSyncResult:
    """Outcome of one account."""
    hub_id: str
    events: Dict[str, int] = field(default_factory=dict)
    actions_flushed: int = 0
    token_refreshed: bool = False


@dataclass
class SyncRunResult:
    """Result of a sync run."""
    status: str
    domain_api_key: str
    accounts: List[AccountSyncResult]
    message: str
    errors: List[str]

    @property
    def accounts_processed(self) -> int:
        return len(self.accounts)

    @property
    def events(self) -> Dict[str, int]:
        """Events pushed per object type across all accounts."""
        totals: Dict[str, int] = {object_type: 0 for object_type in SYNC_ORDER}
        for account in self.accounts:
            for object_type, count in account.events.items():
                totals[object_type] = totals.get(object_type, 0) + count
        return totals

    @property
    def actions_flushed(self) -> int:
        return sum(account.actions_flushed for account in self.accounts)

    @property
    def is_success(self) -> bool:
        """Check if sync was fully successful."""
        return self.status == "success" and len(self.errors) == 0

    @property
    def is_partial_success(self) -> bool:
        """Check if sync had partial success."""
        return self.status == "partial_success"


class HubSpotSyncOrchestrator:
    """
    Orchestrates the incremental HubSpot sync.

    Per account:
    1. Refresh the access token (failure is logged, the sync goes on)
    2. Run the contact, company and meeting paginators, each isolated
    3. Drain the action batcher
    4. Save the domain
    """

    def __init__(
        self,
        client: HubSpotClient,
        credential_store: CredentialStore,
        event_store: EventStore,
        tuning: SyncTuning | None = None,
        domain_api_key: Optional[str] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        status_tracker: SyncStatusTracker | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: HubSpot API client shared by all accounts
            credential_store: Source of domains, tokens and checkpoints
            event_store: Sink for action records
            tuning: Engine thresholds (defaults when None)
            domain_api_key: Domain to sync; the first domain when None
            sleep: Backoff sleep, replaceable in tests
            status_tracker: Live status for the API (module singleton by default)
        """
        self.client = client
        self.credential_store = credential_store
        self.event_store = event_store
        self.tuning = tuning or SyncTuning()
        self.domain_api_key = domain_api_key
        self._sleep = sleep
        self.status = status_tracker or sync_status
        self.error_tracker = ErrorTracker()

    async def run(self) -> SyncRunResult:
        """
        Execute one sync run.

        Returns:
            SyncRunResult with per-account counts and isolated errors

        Raises:
            DomainNotFoundError: If there is no domain to sync
        """
        logger.info("🔄 Start pulling data from HubSpot")
        self.status.start_sync()
        self.error_tracker.clear()

        try:
            domain = await self.credential_store.load_domain(self.domain_api_key)
            self.status.set_accounts_total(len(domain.accounts))

            accounts = []
            for account in list(domain.accounts):
                accounts.append(await self.sync_account(domain, account))

        except Exception as e:
            logger.error(f"❌ HubSpot sync failed: {e}", exc_info=True)
            self.status.add_error(str(e))
            self.status.complete_sync(success=False)
            raise

        errors = self.error_tracker.get_error_messages(limit=100)
        result = SyncRunResult(
            status="partial_success" if errors else "success",
            domain_api_key=domain.api_key,
            accounts=accounts,
            message=f"Synced {len(accounts)} HubSpot account(s)",
            errors=errors,
        )
        self.status.complete_sync(success=True)

        logger.info(
            f"✅ Finished pulling data from HubSpot: {result.events} events, "
            f"{result.actions_flushed} actions stored, {len(errors)} errors",
            extra={"api_key": domain.api_key},
        )
        return result

    def build_session(self, domain: Domain, account: HubspotAccount) -> AccountSession:
        return AccountSession(domain=domain, account=account)

    def build_executor(self) -> tuple[CredentialRefresher, RetryExecutor]:
        """
        Build the retry executors of one account.

        The refresher gets its own hookless executor; the main executor
        refreshes through it before retrying with an expired token.
        """
        refresher = CredentialRefresher(
            self.client,
            max_retries=self.tuning.token_refresh_retries,
            base_delay=self.tuning.retry_base_delay,
            sleep=self._sleep,
        )
        executor = RetryExecutor(
            max_retries=self.tuning.max_retries,
            base_delay=self.tuning.retry_base_delay,
            refresh_hook=refresher.refresh,
            sleep=self._sleep,
        )
        return refresher, executor

    def build_paginator(
        self,
        object_type: str,
        executor: RetryExecutor,
        batcher: ActionBatcher,
    ) -> ObjectPaginator:
        paginator_class = PAGINATOR_CLASSES[object_type]
        return paginator_class(
            client=self.client,
            executor=executor,
            resolver=AssociationResolver(self.client, executor),
            batcher=batcher,
            credential_store=self.credential_store,
            tuning=self.tuning,
        )

    async def sync_account(self, domain: Domain, account: HubspotAccount) -> AccountSyncResult:
        """Sync every object type of one account."""
        session = self.build_session(domain, account)
        context = {"api_key": domain.api_key, "hub_id": account.hub_id}
        result = AccountSyncResult(hub_id=account.hub_id)

        logger.info("Start processing account", extra=context)
        self.status.start_account(account.hub_id)

        refresher, executor = self.build_executor()

        # === Token refresh ===
        self.status.update_phase(SyncPhase.REFRESHING_TOKEN, f"Refreshing access token for hub {account.hub_id}...")
        try:
            result.token_refreshed = await refresher.refresh(session)
        except Exception as e:
            self.error_tracker.track("refreshAccessToken", account.hub_id, e, context)
            self.status.add_error(f"refreshAccessToken (hub {account.hub_id}): {e}")

        batcher = ActionBatcher(
            self.event_store,
            flush_threshold=self.tuning.flush_threshold,
            queue_size=self.tuning.queue_size,
            log_context=context,
        )

        try:
            # === Object types ===
            for object_type in SYNC_ORDER:
                paginator = self.build_paginator(object_type, executor, batcher)
                self.status.start_object_type(account.hub_id, object_type)
                try:
                    count = await paginator.run(session)
                except Exception as e:
                    self.error_tracker.track(paginator.operation, account.hub_id, e, context)
                    self.status.add_error(f"{paginator.operation} (hub {account.hub_id}): {e}")
                    continue
                result.events[object_type] = count
                self.status.update_events(object_type, count)

            # === Drain ===
            self.status.update_phase(SyncPhase.FLUSHING, f"Storing remaining actions for hub {account.hub_id}...")
            try:
                await batcher.drain()
                logger.info("Drained action queue", extra=context)
            except Exception as e:
                self.error_tracker.track("drainQueue", account.hub_id, e, context)
                self.status.add_error(f"drainQueue (hub {account.hub_id}): {e}")
        finally:
            await batcher.close()

        result.actions_flushed = batcher.flushed_count
        self.status.update_flushed(batcher.flushed_count)

        await self.credential_store.save(domain)
        self.status.finish_account()

        logger.info(f"Finished processing account ({result.actions_flushed} actions stored)", extra=context)
        return result
