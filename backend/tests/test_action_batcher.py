"""
Tests for the Action Batcher/Flusher.
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import BASE_TIME
from hubsync.core.exceptions import FlushError
from hubsync.models.events import RawSyncEvent
from hubsync.services.hubspot_sync.action_batcher import ActionBatcher, format_action


def contact_event(i: int) -> RawSyncEvent:
    return RawSyncEvent(
        action_name="Contact Created",
        action_date=BASE_TIME + timedelta(seconds=i),
        properties={"contact": {"contact_name": f"Contact {i}", "contact_score": i}},
        identity=f"contact{i}@example.com",
    )


class TestFormatAction:
    """Tests for format_action."""

    def test_copies_event_fields(self):
        event = contact_event(1)

        record = format_action(event)

        assert record.type == "Contact Created"
        assert record.timestamp == event.action_date
        assert record.identity == "contact1@example.com"
        assert record.include_in_analytics == 0
        assert record.properties == {"contact_name": "Contact 1", "contact_score": 1}

    def test_merges_buckets_contact_last(self):
        """Meeting, then company, then contact; later buckets win."""
        event = RawSyncEvent(
            action_name="Meeting Updated",
            action_date=BASE_TIME,
            properties={
                "contact": {"company_id": "from-contact"},
                "meeting": {"meeting_id": "11", "company_id": "from-meeting"},
                "company": {"company_id": "from-company", "company_domain": "acme.com"},
            },
        )

        record = format_action(event)

        assert record.properties == {
            "meeting_id": "11",
            "company_id": "from-contact",
            "company_domain": "acme.com",
        }

    def test_filters_empty_values(self):
        event = RawSyncEvent(
            action_name="Company Created",
            action_date=BASE_TIME,
            properties={"company": {"company_id": "5", "company_domain": None, "company_industry": "Unknown"}},
        )

        assert format_action(event).properties == {"company_id": "5"}

    def test_group_is_leading_word(self):
        assert contact_event(1).group == "contact"
        assert RawSyncEvent("Meeting Updated", BASE_TIME).group == "meeting"


@pytest.mark.asyncio
class TestActionBatcher:
    """Tests for ActionBatcher."""

    async def test_2001_events_trigger_exactly_one_flush(self, event_store):
        """Crossing the threshold flushes the whole buffer once."""
        batcher = ActionBatcher(event_store, flush_threshold=2000)

        for i in range(2001):
            await batcher.push(contact_event(i))
        await batcher._queue.join()
        await asyncio.gather(*list(batcher._flush_tasks))

        assert event_store.insert_calls == [2001]
        assert batcher.pending == 0

        assert await batcher.drain() == 0
        assert event_store.insert_calls == [2001]
        await batcher.close()

    async def test_below_threshold_waits_for_drain(self, event_store):
        batcher = ActionBatcher(event_store, flush_threshold=2000)

        for i in range(2000):
            await batcher.push(contact_event(i))
        await batcher._queue.join()

        assert event_store.insert_calls == []
        assert batcher.pending == 2000

        assert await batcher.drain() == 2000
        assert event_store.insert_calls == [2000]
        await batcher.close()

    async def test_empty_drain_inserts_nothing(self, event_store):
        """Draining with nothing queued or buffered does no inserts."""
        batcher = ActionBatcher(event_store)

        assert await batcher.drain() == 0
        assert event_store.insert_calls == []
        await batcher.close()

    async def test_drain_stores_every_event(self, event_store):
        """No event is lost between flushes and the final drain."""
        batcher = ActionBatcher(event_store, flush_threshold=10, queue_size=5)

        for i in range(57):
            await batcher.push(contact_event(i))
        await batcher.drain()
        await batcher.close()

        assert len(event_store.records) == 57
        assert batcher.flushed_count == 57
        assert batcher.pushed_count == 57
        assert sorted(record.identity for record in event_store.records) == sorted(
            f"contact{i}@example.com" for i in range(57)
        )

    async def test_flush_inserts_each_group(self, event_store):
        """Mixed batches are inserted per event group."""
        batcher = ActionBatcher(event_store)
        for i in range(3):
            await batcher.push(contact_event(i))
        await batcher.push(RawSyncEvent("Company Created", BASE_TIME, {"company": {"company_id": "1"}}))
        await batcher.push(RawSyncEvent("Meeting Created", BASE_TIME, {"meeting": {"meeting_id": "2"}}))
        await batcher.push(contact_event(9))

        await batcher.drain()
        await batcher.close()

        assert event_store.insert_calls == [4, 1, 1]
        assert [record.type for record in event_store.records[:4]] == ["Contact Created"] * 4

    async def test_failed_background_flush_surfaces_on_drain(self, event_store):
        """A background insert failure is raised by drain."""
        event_store.fail_next = 1
        batcher = ActionBatcher(event_store, flush_threshold=5)

        for i in range(6):
            await batcher.push(contact_event(i))

        with pytest.raises(FlushError) as exc_info:
            await batcher.drain()
        await batcher.close()

        assert len(exc_info.value.failed_batches) == 1

    async def test_failed_final_flush_raises(self, event_store):
        event_store.fail_next = 1
        batcher = ActionBatcher(event_store)
        await batcher.push(contact_event(1))

        with pytest.raises(FlushError):
            await batcher.drain()
        await batcher.close()

    async def test_duplicate_events_are_stored_twice(self, event_store):
        """Delivery is at-least-once: the store does not deduplicate."""
        batcher = ActionBatcher(event_store)
        await batcher.push(contact_event(1))
        await batcher.push(contact_event(1))

        await batcher.drain()
        await batcher.close()

        assert len(event_store.records) == 2
        assert event_store.records[0] == event_store.records[1]

    async def test_close_is_idempotent(self, event_store):
        batcher = ActionBatcher(event_store)
        await batcher.push(contact_event(1))
        await batcher.drain()

        await batcher.close()
        await batcher.close()
