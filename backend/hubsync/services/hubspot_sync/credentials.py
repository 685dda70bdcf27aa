"""
Credential Refresher.

Exchanges an account's refresh token for a new access token and records
when that token expires. Persisting the account is left to the caller.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

from hubsync.core.exceptions import CredentialRefreshError
from hubsync.core.interfaces.stores import find_account
from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.services.hubspot_sync.retry import RetryExecutor
from hubsync.services.hubspot_sync.session import AccountSession
from hubsync.utils.dates import utcnow

logger = logging.getLogger(__name__)


class CredentialRefresher:
    """
    Refreshes HubSpot OAuth access tokens.

    The token exchange runs through its own executor that has no refresh
    hook, which bounds the refresh recursion to a single level.
    """

    def __init__(
        self,
        client: HubSpotClient,
        max_retries: int = 2,
        base_delay: float = 5.0,
        executor: RetryExecutor | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.executor = executor or RetryExecutor(max_retries=max_retries, base_delay=base_delay, sleep=sleep)

    async def refresh(self, session: AccountSession) -> bool:
        """
        Refresh the session's access token.

        Returns:
            True once the new token is in place

        Raises:
            RetryExhaustedError: If the token endpoint kept failing
            CredentialRefreshError: If the response carries no access token
            AccountNotFoundError: If the account is no longer on the domain
        """
        account = find_account(session.domain, session.hub_id)

        result = await self.executor.execute(
            lambda: self.client.create_token(account.refresh_token),
            session,
            operation="refreshAccessToken",
        )

        new_access_token = result.get("access_token")
        if not new_access_token:
            raise CredentialRefreshError(f"No access_token in token response for hub {session.hub_id}")

        expires_in = int(result.get("expires_in") or 0)
        session.token_expires_at = utcnow() + timedelta(seconds=expires_in)

        if new_access_token != account.access_token:
            account.access_token = new_access_token

        logger.info(
            f"Access token refreshed (valid for {expires_in}s)",
            extra=session.log_context("refreshAccessToken"),
        )
        return True
