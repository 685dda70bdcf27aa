"""
Event store backed by SQLAlchemy.

Plain bulk inserts: repeated delivery of the same logical event produces
duplicate rows.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hubsync.core.interfaces.stores import EventStore
from hubsync.models.action import Action
from hubsync.models.events import ActionRecord
from hubsync.utils.dates import as_utc

logger = logging.getLogger(__name__)


class ActionRepository(EventStore):
    """SQLAlchemy implementation of the event store."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def insert_many(self, records: List[ActionRecord]) -> int:
        if not records:
            return 0

        rows = [
            Action(
                type=record.type,
                timestamp=record.timestamp,
                properties=_to_json(record.properties),
                identity=record.identity,
                include_in_analytics=record.include_in_analytics,
            )
            for record in records
        ]

        async with self.session_maker() as session:
            session.add_all(rows)
            await session.commit()

        logger.debug(f"Inserted {len(rows)} actions")
        return len(rows)

    async def get_actions_by_date_range(
        self,
        start: datetime,
        end: datetime,
        action_type: Optional[str] = None,
    ) -> List[ActionRecord]:
        stmt = select(Action).where(Action.timestamp >= start, Action.timestamp <= end)
        if action_type:
            stmt = stmt.where(Action.type == action_type)
        stmt = stmt.order_by(Action.timestamp.desc(), Action.id.desc())

        async with self.session_maker() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return [
            ActionRecord(
                type=row.type,
                timestamp=as_utc(row.timestamp),
                properties=dict(row.properties or {}),
                identity=row.identity,
                include_in_analytics=row.include_in_analytics,
            )
            for row in rows
        ]


def _to_json(properties: dict) -> dict:
    """JSON columns cannot hold datetimes; store them as ISO strings."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in properties.items()
    }
