"""
Credential store backed by SQLAlchemy.

Loads a domain together with its HubSpot accounts and saves it back as a
whole document.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from hubsync.core.exceptions import DomainNotFoundError
from hubsync.core.interfaces.stores import CredentialStore
from hubsync.models.domain import Domain

logger = logging.getLogger(__name__)


class DomainRepository(CredentialStore):
    """SQLAlchemy implementation of the credential store."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def load_domain(self, api_key: Optional[str] = None) -> Domain:
        stmt = select(Domain).options(selectinload(Domain.accounts)).order_by(Domain.id)
        if api_key:
            stmt = stmt.where(Domain.api_key == api_key)

        async with self.session_maker() as session:
            result = await session.execute(stmt.limit(1))
            domain = result.scalars().first()

        if domain is None:
            raise DomainNotFoundError(
                f"Domain {api_key} not found" if api_key else "No domain configured"
            )

        logger.debug(
            "Loaded domain",
            extra={"api_key": domain.api_key, "accounts": len(domain.accounts)},
        )
        return domain

    async def save(self, domain: Domain) -> None:
        """
        Saves the domain and its accounts.

        The in-memory instance stays detached; ``merge`` copies its state
        (accounts included) onto the persistent rows.
        """
        async with self.session_maker() as session:
            merged = await session.merge(domain)
            await session.commit()

            # New rows get their ids on commit
            if domain.id is None:
                domain.id = merged.id
            for account, merged_account in zip(domain.accounts, merged.accounts):
                if account.id is None:
                    account.id = merged_account.id
                    account.domain_id = merged.id

    async def add_domain(self, domain: Domain) -> Domain:
        """Inserts a new domain with its accounts."""
        async with self.session_maker() as session:
            session.add(domain)
            await session.commit()
        logger.info("Domain created", extra={"api_key": domain.api_key})
        return domain
