"""
Domain and HubspotAccount models - the credential store.

A domain is one tenant. It owns one or more connected HubSpot accounts,
each carrying its OAuth tokens and a last-pulled checkpoint per object
type. The sync engine mutates these rows in memory and saves the whole
domain after every meaningful change.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hubsync.db.base import Base
from hubsync.utils.dates import as_utc

# Object types with their own last-pulled checkpoint
OBJECT_TYPES = ("contacts", "companies", "meetings")


class Domain(Base):
    """A tenant of the sync worker."""

    __tablename__ = "domains"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    api_key: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
        index=True,
        comment="Tenant key used to tag log lines and select the domain",
    )

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    accounts: Mapped[List["HubspotAccount"]] = relationship(
        back_populates="domain",
        cascade="all, delete-orphan",
        order_by="HubspotAccount.id",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Domain(id={self.id}, api_key='{self.api_key}', accounts={len(self.accounts)})>"


class HubspotAccount(Base):
    """A HubSpot portal connected to a domain."""

    __tablename__ = "hubspot_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    domain_id: Mapped[int | None] = mapped_column(
        ForeignKey("domains.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    hub_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="HubSpot portal id",
    )

    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)

    # Incremental sync checkpoints
    last_pulled_contacts: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_pulled_companies: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_pulled_meetings: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    domain: Mapped[Optional[Domain]] = relationship(back_populates="accounts")

    __table_args__ = (
        UniqueConstraint("domain_id", "hub_id", name="uq_hubspot_accounts_domain_hub"),
    )

    def get_last_pulled(self, object_type: str) -> Optional[datetime]:
        """Checkpoint for ``object_type`` (contacts, companies or meetings)."""
        if object_type not in OBJECT_TYPES:
            raise ValueError(f"Unknown object type: {object_type}")
        return as_utc(getattr(self, f"last_pulled_{object_type}"))

    def set_last_pulled(self, object_type: str, value: datetime) -> None:
        if object_type not in OBJECT_TYPES:
            raise ValueError(f"Unknown object type: {object_type}")
        setattr(self, f"last_pulled_{object_type}", value)

    def __repr__(self) -> str:
        return f"<HubspotAccount(hub_id='{self.hub_id}', domain_id={self.domain_id})>"
