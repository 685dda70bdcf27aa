"""
Abstract store interfaces.
Defines the contracts the sync engine needs from its persistence layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from hubsync.core.exceptions import AccountNotFoundError
from hubsync.models.domain import Domain, HubspotAccount
from hubsync.models.events import ActionRecord


def find_account(domain: Domain, hub_id: str) -> HubspotAccount:
    """
    Finds a connected account by HubSpot portal id.

    Raises:
        AccountNotFoundError: If the domain has no such account
    """
    for account in domain.accounts:
        if account.hub_id == hub_id:
            return account
    raise AccountNotFoundError(hub_id)


class CredentialStore(ABC):
    """
    Holds tenants, their HubSpot accounts, tokens and sync checkpoints.

    The sync engine treats a domain as one document: it loads it once per
    run, mutates it in memory, and saves the whole document after every
    token or checkpoint change.
    """

    @abstractmethod
    async def load_domain(self, api_key: Optional[str] = None) -> Domain:
        """
        Loads a domain with its accounts.

        Args:
            api_key: Domain to load; the first domain when None

        Raises:
            DomainNotFoundError: If no matching domain exists
        """
        pass

    @abstractmethod
    async def save(self, domain: Domain) -> None:
        """Persists the domain and all of its accounts."""
        pass

    def find_account(self, domain: Domain, hub_id: str) -> HubspotAccount:
        """Finds a connected account by HubSpot portal id."""
        return find_account(domain, hub_id)


class EventStore(ABC):
    """Append-only sink for action records."""

    @abstractmethod
    async def insert_many(self, records: List[ActionRecord]) -> int:
        """
        Bulk-inserts records without dedup.

        Returns:
            Number of records inserted
        """
        pass

    @abstractmethod
    async def get_actions_by_date_range(
        self,
        start: datetime,
        end: datetime,
        action_type: Optional[str] = None,
    ) -> List[ActionRecord]:
        """Records with ``start <= timestamp <= end``, newest first."""
        pass
