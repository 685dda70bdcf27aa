"""
Tests for the Association Resolver.
"""

from datetime import timedelta

import pytest

from conftest import make_domain, no_sleep
from hubsync.core.exceptions import RetryExhaustedError
from hubsync.services.hubspot_sync.associations import AssociationResolver
from hubsync.services.hubspot_sync.retry import RetryExecutor
from hubsync.services.hubspot_sync.session import AccountSession
from hubsync.utils.dates import utcnow


def resolver_for(client):
    executor = RetryExecutor(max_retries=1, base_delay=0, sleep=no_sleep)
    domain = make_domain()
    session = AccountSession(domain, domain.accounts[0], token_expires_at=utcnow() + timedelta(hours=1))
    return AssociationResolver(client, executor), session


@pytest.mark.asyncio
class TestContactCompanies:
    """Tests for contact -> company resolution."""

    async def test_maps_contacts_to_first_company(self, fake_client):
        fake_client.contact_companies = {"1": "900", "3": "901"}
        resolver, session = resolver_for(fake_client)

        result = await resolver.contact_companies(["1", "2", "3"], session)

        assert result == {"1": "900", "3": "901"}
        assert fake_client.calls == [("batch_associations", ("1", "2", "3"))]

    async def test_malformed_rows_are_skipped(self, fake_client):
        """Rows without a target id are left out instead of failing the page."""
        async def batch_read(from_type, to_type, object_ids, access_token):
            return [
                {"from": {"id": "1"}, "to": [{"type": "contact_to_company"}]},
                {"from": {"id": "2"}, "to": [{"id": "902"}]},
                {"to": [{"id": "903"}]},
            ]

        fake_client.batch_read_associations = batch_read
        resolver, session = resolver_for(fake_client)

        assert await resolver.contact_companies(["1", "2", "3"], session) == {"2": "902"}

    async def test_empty_input_makes_no_call(self, fake_client):
        resolver, session = resolver_for(fake_client)

        assert await resolver.contact_companies([], session) == {}
        assert fake_client.calls == []

    async def test_failure_propagates(self, fake_client):
        """A failed batch read aborts the page like a failed search."""
        fake_client.always_fail.add("batch_associations")
        resolver, session = resolver_for(fake_client)

        with pytest.raises(RetryExhaustedError):
            await resolver.contact_companies(["1"], session)


@pytest.mark.asyncio
class TestMeetingContactEmails:
    """Tests for meeting -> contact email resolution."""

    async def test_resolves_emails_sequentially(self, fake_client):
        fake_client.meeting_contacts = {"11": "7", "12": "8"}
        fake_client.contact_emails = {"7": "a@example.com", "8": "b@example.com"}
        resolver, session = resolver_for(fake_client)

        result = await resolver.meeting_contact_emails([{"id": "11"}, {"id": "12"}], session)

        assert result == {"11": "a@example.com", "12": "b@example.com"}
        assert fake_client.calls == [
            ("associations", "11"),
            ("get_object", "7"),
            ("associations", "12"),
            ("get_object", "8"),
        ]

    async def test_meeting_without_contact(self, fake_client):
        resolver, session = resolver_for(fake_client)

        result = await resolver.meeting_contact_emails([{"id": "11"}], session)

        assert result == {}
        assert ("get_object", "7") not in fake_client.calls

    async def test_contact_without_email(self, fake_client):
        fake_client.meeting_contacts = {"11": "7"}
        resolver, session = resolver_for(fake_client)

        assert await resolver.meeting_contact_emails([{"id": "11"}], session) == {}

    async def test_failed_meeting_is_skipped(self, fake_client):
        """One failing lookup does not stop the others."""
        fake_client.meeting_contacts = {"11": "7", "12": "8"}
        fake_client.contact_emails = {"7": "a@example.com", "8": "b@example.com"}
        fake_client.always_fail.add("associations:11")
        resolver, session = resolver_for(fake_client)

        result = await resolver.meeting_contact_emails([{"id": "11"}, {"id": "12"}], session)

        assert result == {"12": "b@example.com"}
        # One retry for the failing meeting
        assert fake_client.calls.count(("associations", "11")) == 2

    async def test_association_without_contact_id(self, fake_client):
        async def get_associations(object_type, object_id, to_type, access_token):
            return [{"id": "7"}]

        fake_client.get_associations = get_associations
        resolver, session = resolver_for(fake_client)

        assert await resolver.meeting_contact_emails([{"id": "11"}], session) == {}
        assert fake_client.calls == []

    async def test_unexpected_contact_payload_is_skipped(self, fake_client):
        """Errors outside the API calls are isolated per meeting too."""
        fake_client.meeting_contacts = {"11": "7", "12": "8"}
        fake_client.contact_emails = {"8": "b@example.com"}
        well_formed = fake_client.get_object

        async def get_object(object_type, object_id, properties, access_token):
            if object_id == "7":
                return ["not", "a", "contact"]
            return await well_formed(object_type, object_id, properties, access_token)

        fake_client.get_object = get_object
        resolver, session = resolver_for(fake_client)

        result = await resolver.meeting_contact_emails([{"id": "11"}, {"id": "12"}], session)

        assert result == {"12": "b@example.com"}
