"""
Shared fixtures: a scripted HubSpot API and in-memory stores.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from hubsync.core.config import SyncTuning
from hubsync.core.exceptions import DomainNotFoundError
from hubsync.core.interfaces.stores import CredentialStore, EventStore
from hubsync.integrations.hubspot.client import HubSpotAPIError
from hubsync.models.domain import Domain, HubspotAccount
from hubsync.services.sync_status import SyncStatusTracker
from hubsync.utils.dates import parse_hubspot_datetime, to_epoch_millis

BASE_TIME = datetime(2024, 3, 1, tzinfo=timezone.utc)


def iso(value: datetime) -> str:
    """HubSpot-style timestamp string."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def make_record(
    record_id: int,
    created_at: datetime,
    updated_at: Optional[datetime] = None,
    **properties: Any,
) -> Dict[str, Any]:
    """A search result as returned by /crm/v3/objects/{type}/search."""
    return {
        "id": str(record_id),
        "properties": properties,
        "createdAt": iso(created_at),
        "updatedAt": iso(updated_at or created_at),
        "archived": False,
    }


def make_contacts(count: int, start: int = 1, base: datetime = BASE_TIME) -> List[Dict[str, Any]]:
    """Contacts with distinct, ascending modification times."""
    return [
        make_record(
            i,
            created_at=base + timedelta(minutes=i),
            firstname=f"First{i}",
            lastname=f"Last{i}",
            email=f"contact{i}@example.com",
            hubspotscore=str(i),
        )
        for i in range(start, start + count)
    ]


class FakeHubSpotClient:
    """
    Scripted stand-in for HubSpotClient.

    Serves search pages from in-memory records (honouring the GTE/LTE date
    filters and the ``after`` offset), answers association and contact
    lookups from plain dicts, and can be told to fail a number of times
    per operation.
    """

    def __init__(self):
        self.objects: Dict[str, List[Dict[str, Any]]] = {"contacts": [], "companies": [], "meetings": []}
        self.contact_companies: Dict[str, str] = {}
        self.meeting_contacts: Dict[str, str] = {}
        self.contact_emails: Dict[str, str] = {}

        self.failures: Dict[str, int] = {}
        self.always_fail: set = set()

        self.expires_in = 1800
        self.token_counter = 0

        self.calls: List[tuple] = []
        self.search_requests: Dict[str, List[Dict[str, Any]]] = {"contacts": [], "companies": [], "meetings": []}
        self.tokens_seen: List[Optional[str]] = []

    def fail(self, operation: str, times: int = 1):
        self.failures[operation] = self.failures.get(operation, 0) + times

    def _maybe_fail(self, operation: str):
        if operation in self.always_fail:
            raise HubSpotAPIError(f"{operation} unavailable", status_code=503)
        remaining = self.failures.get(operation, 0)
        if remaining:
            self.failures[operation] = remaining - 1
            raise HubSpotAPIError(f"{operation} failed", status_code=500)

    @property
    def refresh_count(self) -> int:
        return sum(1 for call in self.calls if call[0] == "create_token")

    async def search_objects(self, object_type, search_request, access_token):
        self.calls.append(("search", object_type))
        self.tokens_seen.append(access_token)
        self.search_requests[object_type].append(search_request)
        self._maybe_fail(f"search:{object_type}")

        records = self.objects[object_type]
        for group in search_request.get("filterGroups") or []:
            for search_filter in group.get("filters") or []:
                bound = int(search_filter["value"])
                if search_filter["operator"] == "GTE":
                    records = [r for r in records if _modified_millis(r) >= bound]
                elif search_filter["operator"] == "LTE":
                    records = [r for r in records if _modified_millis(r) <= bound]

        after = int(search_request.get("after") or 0)
        limit = search_request["limit"]
        page = records[after:after + limit]
        response: Dict[str, Any] = {"total": len(records), "results": page}
        if after + limit < len(records):
            response["paging"] = {"next": {"after": str(after + limit)}}
        return response

    async def batch_read_associations(self, from_type, to_type, object_ids, access_token):
        self.calls.append(("batch_associations", tuple(object_ids)))
        self._maybe_fail("batch_associations")
        return [
            {"from": {"id": contact_id}, "to": [{"id": self.contact_companies[contact_id], "type": "contact_to_company"}]}
            for contact_id in object_ids
            if contact_id in self.contact_companies
        ]

    async def get_associations(self, object_type, object_id, to_type, access_token):
        self.calls.append(("associations", object_id))
        self._maybe_fail(f"associations:{object_id}")
        contact_id = self.meeting_contacts.get(str(object_id))
        return [{"toObjectId": int(contact_id), "associationTypes": []}] if contact_id else []

    async def get_object(self, object_type, object_id, properties, access_token):
        self.calls.append(("get_object", object_id))
        self._maybe_fail("get_object")
        return {"id": object_id, "properties": {"email": self.contact_emails.get(str(object_id))}}

    async def create_token(self, refresh_token):
        self.calls.append(("create_token", refresh_token))
        self._maybe_fail("create_token")
        self.token_counter += 1
        return {
            "access_token": f"access-{self.token_counter}",
            "refresh_token": refresh_token,
            "expires_in": self.expires_in,
        }

    async def close(self):
        pass


def _modified_millis(record: Dict[str, Any]) -> int:
    return to_epoch_millis(parse_hubspot_datetime(record["updatedAt"]))


class InMemoryCredentialStore(CredentialStore):
    """Credential store keeping domains in a list."""

    def __init__(self, domains: Optional[List[Domain]] = None):
        self.domains = domains or []
        self.save_count = 0

    async def load_domain(self, api_key=None):
        for domain in self.domains:
            if api_key is None or domain.api_key == api_key:
                return domain
        raise DomainNotFoundError("No domain configured")

    async def save(self, domain):
        self.save_count += 1


class InMemoryEventStore(EventStore):
    """Event store appending to a list; can be told to fail."""

    def __init__(self):
        self.records = []
        self.insert_calls: List[int] = []
        self.fail_next = 0

    async def insert_many(self, records):
        if self.fail_next:
            self.fail_next -= 1
            raise RuntimeError("insert failed")
        self.insert_calls.append(len(records))
        self.records.extend(records)
        return len(records)

    async def get_actions_by_date_range(self, start, end, action_type=None):
        matching = [
            record for record in self.records
            if start <= record.timestamp <= end and (action_type is None or record.type == action_type)
        ]
        return sorted(matching, key=lambda record: record.timestamp, reverse=True)


async def no_sleep(delay: float) -> None:
    """Backoff sleep replacement."""
    return None


class RecordingSleep:
    """Backoff sleep replacement that remembers the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_domain(hub_ids=("101",), api_key: str = "tenant-key", **last_pulled) -> Domain:
    """A domain with one account per hub id."""
    domain = Domain(api_key=api_key, name="Tenant")
    for hub_id in hub_ids:
        domain.accounts.append(
            HubspotAccount(
                hub_id=hub_id,
                access_token="stale-token",
                refresh_token=f"refresh-{hub_id}",
                last_pulled_contacts=last_pulled.get("contacts"),
                last_pulled_companies=last_pulled.get("companies"),
                last_pulled_meetings=last_pulled.get("meetings"),
            )
        )
    return domain


@pytest.fixture
def fake_client():
    return FakeHubSpotClient()


@pytest.fixture
def event_store():
    return InMemoryEventStore()


@pytest.fixture
def tuning():
    return SyncTuning(retry_base_delay=0.0)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture(autouse=True)
def reset_sync_status():
    """Keep the status singleton independent between tests."""
    SyncStatusTracker().reset()
    yield
    SyncStatusTracker().reset()
