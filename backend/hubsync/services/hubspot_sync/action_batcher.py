"""
Action Batcher/Flusher.

Paginators push RawSyncEvents into a bounded queue. A single worker moves
them into a buffer; once the buffer grows past the flush threshold it is
handed to a background flush and a fresh buffer starts. ``drain()`` waits
for the queue and every in-flight flush, then flushes what is left.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set

from hubsync.core.exceptions import FlushError
from hubsync.core.interfaces.stores import EventStore
from hubsync.models.events import PROPERTY_BUCKETS, ActionRecord, RawSyncEvent
from hubsync.services.hubspot_sync.property_filter import filter_null_values

logger = logging.getLogger(__name__)


def format_action(event: RawSyncEvent) -> ActionRecord:
    """
    Convert a raw event into its persisted form.

    Property buckets are merged in meeting, company, contact order (later
    buckets win on clashes) and stripped of empty values.
    """
    merged: Dict = {}
    for bucket in PROPERTY_BUCKETS:
        merged.update(event.properties.get(bucket) or {})

    return ActionRecord(
        type=event.action_name,
        timestamp=event.action_date,
        properties=filter_null_values(merged),
        identity=event.identity,
        include_in_analytics=event.include_in_analytics,
    )


class ActionBatcher:
    """
    Buffers events and writes them to the event store in batches.

    One batcher serves one account; the orchestrator drains and closes it
    before moving on to the next account.
    """

    def __init__(
        self,
        event_store: EventStore,
        flush_threshold: int = 2000,
        queue_size: int = 10000,
        log_context: Optional[dict] = None,
    ):
        self.event_store = event_store
        self.flush_threshold = flush_threshold
        self.log_context = log_context or {}

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._buffer: List[RawSyncEvent] = []
        self._flush_tasks: Set[asyncio.Task] = set()
        self._failures: List[BaseException] = []
        self._worker: Optional[asyncio.Task] = None

        self.pushed_count = 0
        self.flushed_count = 0
        self.flush_count = 0

    def start(self) -> None:
        """Start the consumer task (idempotent)."""
        if self._worker is None:
            self._worker = asyncio.create_task(self._consume())

    async def push(self, event: RawSyncEvent) -> None:
        """Enqueue an event, waiting while the queue is full."""
        self.start()
        await self._queue.put(event)
        self.pushed_count += 1

    @property
    def pending(self) -> int:
        """Events queued or buffered but not yet flushed."""
        return self._queue.qsize() + len(self._buffer)

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._buffer.append(event)
                if len(self._buffer) > self.flush_threshold:
                    batch, self._buffer = self._buffer, []
                    logger.info(
                        f"Inserting {len(batch)} actions to database",
                        extra={**self.log_context, "count": len(batch)},
                    )
                    self._schedule_flush(batch)
            finally:
                self._queue.task_done()

    def _schedule_flush(self, batch: List[RawSyncEvent]) -> None:
        task = asyncio.create_task(self._flush_in_background(batch))
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def _flush_in_background(self, batch: List[RawSyncEvent]) -> None:
        try:
            await self.flush(batch)
        except Exception as e:
            logger.error(
                f"❌ Background flush of {len(batch)} actions failed: {e}",
                extra={**self.log_context, "count": len(batch)},
            )
            self._failures.append(e)

    async def flush(self, batch: List[RawSyncEvent]) -> int:
        """
        Write a batch to the event store.

        Events are grouped by the leading word of their name ("contact",
        "company", "meeting") and each group is inserted separately.

        Returns:
            Number of records inserted
        """
        groups: Dict[str, List[RawSyncEvent]] = defaultdict(list)
        for event in batch:
            groups[event.group].append(event)

        inserted = 0
        for group, events in groups.items():
            logger.info(f"Processing {len(events)} {group} actions", extra=self.log_context)
            records = [format_action(event) for event in events]
            inserted += await self.event_store.insert_many(records)

        self.flushed_count += inserted
        self.flush_count += 1
        return inserted

    async def drain(self) -> int:
        """
        Wait for all queued events to be stored.

        Returns:
            Number of records inserted by the final flush

        Raises:
            FlushError: If any batch, background or final, failed to insert
        """
        await self._queue.join()

        if self._flush_tasks:
            await asyncio.gather(*list(self._flush_tasks))

        inserted = 0
        if self._buffer:
            batch, self._buffer = self._buffer, []
            try:
                inserted = await self.flush(batch)
            except Exception as e:
                logger.error(
                    f"❌ Final flush of {len(batch)} actions failed: {e}",
                    extra={**self.log_context, "count": len(batch)},
                )
                self._failures.append(e)

        if self._failures:
            failures, self._failures = self._failures, []
            raise FlushError(failures)

        return inserted

    async def close(self) -> None:
        """Stop the consumer task."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
