"""
Action model - the append-only event store.

Every detected create/update of a HubSpot company, contact or meeting is
written here once and never mutated.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from hubsync.db.base import Base


class Action(Base):
    """SQLAlchemy model for analytics-ready action records."""

    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Event name, e.g. 'Contact Created'",
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="When the change happened in HubSpot",
    )

    properties: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    identity: Mapped[str | None] = mapped_column(
        String(320),
        nullable=True,
        index=True,
        comment="External key (contact email) linking events across object types",
    )

    include_in_analytics: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_actions_type_timestamp", "type", "timestamp"),
        Index("ix_actions_identity_timestamp", "identity", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<Action(id={self.id}, type='{self.type}', identity={self.identity!r})>"
