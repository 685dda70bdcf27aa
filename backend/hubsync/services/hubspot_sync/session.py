"""
Per-account sync session.

Carries the account being synced together with the expiration of its
current access token. Expiration is never shared between accounts: each
session owns its own value and is passed by reference to every call.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from hubsync.models.domain import Domain, HubspotAccount
from hubsync.utils.dates import utcnow


@dataclass
class AccountSession:
    """In-memory state of one account during one sync run."""
    domain: Domain
    account: HubspotAccount
    token_expires_at: Optional[datetime] = None

    @property
    def hub_id(self) -> str:
        return self.account.hub_id

    @property
    def access_token(self) -> Optional[str]:
        return self.account.access_token

    def token_expired(self, now: Optional[datetime] = None) -> bool:
        """True when the token expired or its expiration is unknown."""
        if self.token_expires_at is None:
            return True
        return (now or utcnow()) > self.token_expires_at

    def log_context(self, operation: str) -> dict:
        """Structured logging context for this account."""
        return {
            "operation": operation,
            "api_key": self.domain.api_key,
            "hub_id": self.hub_id,
        }
