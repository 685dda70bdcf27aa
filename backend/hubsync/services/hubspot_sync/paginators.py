"""
Object Paginators.

One paginator per synced HubSpot object type. Each pages through the
search endpoint in ascending modification order, turns every changed
record into a RawSyncEvent and pushes it to the action batcher.

HubSpot refuses search offsets past 10,000. When the next offset reaches
the rollover threshold the paginator restarts at offset 0 with the lower
bound moved up to the last record's ``updatedAt``, or one millisecond
past the current bound when that timestamp would not move it.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from hubsync.core.config import SyncTuning
from hubsync.core.interfaces.stores import CredentialStore
from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.integrations.hubspot.schema import get_label, get_modified_property, get_properties
from hubsync.models.events import RawSyncEvent
from hubsync.services.hubspot_sync.action_batcher import ActionBatcher
from hubsync.services.hubspot_sync.associations import AssociationResolver
from hubsync.services.hubspot_sync.property_filter import filter_null_values
from hubsync.services.hubspot_sync.retry import RetryExecutor
from hubsync.services.hubspot_sync.session import AccountSession
from hubsync.utils.dates import parse_hubspot_datetime, to_epoch_millis, utcnow

logger = logging.getLogger(__name__)

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class PaginationCursor:
    """Position within one object type's search."""
    after: Optional[int] = None
    last_modified_date: Optional[datetime] = None


def parse_next_after(response: Dict[str, Any]) -> Optional[int]:
    """Offset of the next page, or None when there is none."""
    raw = ((response.get("paging") or {}).get("next") or {}).get("after")
    if raw is None:
        return None
    try:
        return int(str(raw))
    except ValueError:
        return None


def parse_score(value: Any) -> int:
    """Leading integer of a HubSpot score, 0 when there is none."""
    if value is None:
        return 0
    match = _LEADING_INTEGER.match(str(value))
    return int(match.group(1)) if match else 0


class ObjectPaginator(ABC):
    """
    Incremental search over one HubSpot object type.

    Subclasses set ``object_type`` and turn a page of records into events.
    """

    object_type: str = ""

    def __init__(
        self,
        client: HubSpotClient,
        executor: RetryExecutor,
        resolver: AssociationResolver,
        batcher: ActionBatcher,
        credential_store: CredentialStore,
        tuning: SyncTuning | None = None,
    ):
        self.client = client
        self.executor = executor
        self.resolver = resolver
        self.batcher = batcher
        self.credential_store = credential_store
        self.tuning = tuning or SyncTuning()

    @property
    def label(self) -> str:
        return get_label(self.object_type)

    @property
    def operation(self) -> str:
        return f"process{self.object_type.capitalize()}"

    def build_search_request(
        self,
        lower_bound: Optional[datetime],
        now: datetime,
        after: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build the search body for one page.

        Args:
            lower_bound: Only records modified at or after this instant;
                no date filter at all when None (first sync)
            now: Run start, the upper bound of the window
            after: Paging offset

        Returns:
            JSON body for ``POST /crm/v3/objects/{type}/search``
        """
        modified_property = get_modified_property(self.object_type)

        filter_group: Dict[str, Any] = {}
        if lower_bound is not None:
            filter_group = {
                "filters": [
                    {"propertyName": modified_property, "operator": "GTE", "value": str(to_epoch_millis(lower_bound))},
                    {"propertyName": modified_property, "operator": "LTE", "value": str(to_epoch_millis(now))},
                ]
            }

        request: Dict[str, Any] = {
            "filterGroups": [filter_group] if filter_group else [],
            "sorts": [{"propertyName": modified_property, "direction": "ASCENDING"}],
            "properties": get_properties(self.object_type),
            "limit": self.tuning.page_size,
        }
        if after is not None:
            request["after"] = after
        return request

    async def run(self, session: AccountSession) -> int:
        """
        Sync every record changed since the account's last pull.

        On completion the checkpoint moves to the run start and the
        domain is saved. A search that fails after all retries raises and
        leaves the checkpoint untouched.

        Returns:
            Number of events pushed to the batcher
        """
        account = session.account
        last_pulled = account.get_last_pulled(self.object_type)
        now = utcnow()
        cursor = PaginationCursor()
        context = session.log_context(self.operation)

        pushed = 0
        pages = 0

        while True:
            lower_bound = cursor.last_modified_date or last_pulled
            request = self.build_search_request(lower_bound, now, cursor.after)

            response = await self.executor.execute(
                lambda: self.client.search_objects(self.object_type, request, session.access_token),
                session,
                operation=f"search{self.object_type.capitalize()}",
            )

            records = response.get("results") or []
            pages += 1
            next_after = parse_next_after(response)
            logger.info(f"Fetched {self.object_type} page {pages} ({len(records)} records)", extra=context)

            events = await self.build_events(records, session, last_pulled)
            for event in events:
                await self.batcher.push(event)
            pushed += len(events)

            if not next_after:
                break

            if next_after >= self.tuning.rollover_threshold:
                last_updated = parse_hubspot_datetime(records[-1].get("updatedAt")) if records else None
                if last_updated is None:
                    logger.warning(
                        f"Reached offset {next_after} without a usable updatedAt, stopping {self.object_type} paging",
                        extra=context,
                    )
                    break
                if lower_bound is not None and last_updated <= lower_bound:
                    # More records share one timestamp than the search can page through
                    last_updated = lower_bound + timedelta(milliseconds=1)
                    logger.warning(
                        f"Offset {next_after} reached without leaving {lower_bound.isoformat()}, "
                        f"skipping the remaining {self.object_type} modified at that instant",
                        extra=context,
                    )
                logger.info(
                    f"Offset {next_after} reached rollover threshold, restarting from {last_updated.isoformat()}",
                    extra=context,
                )
                cursor = PaginationCursor(after=0, last_modified_date=last_updated)
            else:
                cursor.after = next_after

        account.set_last_pulled(self.object_type, now)
        await self.credential_store.save(session.domain)

        logger.info(f"✅ {self.label} sync done: {pushed} events from {pages} pages", extra=context)
        return pushed

    def classify(
        self,
        record: Dict[str, Any],
        last_pulled: Optional[datetime],
        now: datetime,
    ) -> tuple[str, datetime]:
        """
        Event name and date for a record.

        A record counts as created when the account was never synced or
        when it was created strictly after the last pull.
        """
        created_at = parse_hubspot_datetime(record.get("createdAt"))
        updated_at = parse_hubspot_datetime(record.get("updatedAt"))

        is_created = last_pulled is None or (created_at is not None and created_at > last_pulled)
        if is_created:
            return f"{self.label} Created", created_at or updated_at or now
        return f"{self.label} Updated", updated_at or created_at or now

    @abstractmethod
    async def build_events(
        self,
        records: List[Dict[str, Any]],
        session: AccountSession,
        last_pulled: Optional[datetime],
    ) -> List[RawSyncEvent]:
        """Turn one page of search results into events."""
        pass


class CompanyPaginator(ObjectPaginator):
    """Companies: events dated slightly before the record's timestamp."""

    object_type = "companies"

    async def build_events(self, records, session, last_pulled):
        now = utcnow()
        skew = timedelta(seconds=self.tuning.company_time_skew)
        events = []

        for company in records:
            properties = company.get("properties")
            if not properties:
                continue

            action_name, action_date = self.classify(company, last_pulled, now)
            events.append(
                RawSyncEvent(
                    action_name=action_name,
                    action_date=action_date - skew,
                    properties={
                        "company": {
                            "company_id": str(company.get("id")),
                            "company_domain": properties.get("domain"),
                            "company_industry": properties.get("industry"),
                        }
                    },
                )
            )
        return events


class ContactPaginator(ObjectPaginator):
    """Contacts: keyed by email, linked to their first company."""

    object_type = "contacts"

    async def build_events(self, records, session, last_pulled):
        contact_ids = [str(contact.get("id")) for contact in records if contact.get("id") is not None]
        companies = await self.resolver.contact_companies(contact_ids, session)

        now = utcnow()
        events = []
        skipped = 0

        for contact in records:
            properties = contact.get("properties")
            if not properties or not properties.get("email"):
                skipped += 1
                continue

            name = f"{properties.get('firstname') or ''} {properties.get('lastname') or ''}".strip()
            contact_properties = filter_null_values({
                "company_id": companies.get(str(contact.get("id"))),
                "contact_name": name,
                "contact_title": properties.get("jobtitle"),
                "contact_source": properties.get("hs_analytics_source"),
                "contact_status": properties.get("hs_lead_status"),
                "contact_score": parse_score(properties.get("hubspotscore")),
            })

            action_name, action_date = self.classify(contact, last_pulled, now)
            events.append(
                RawSyncEvent(
                    action_name=action_name,
                    action_date=action_date,
                    properties={"contact": contact_properties},
                    identity=properties["email"],
                )
            )

        if skipped:
            logger.debug(f"Skipped {skipped} contacts without email")
        return events


class MeetingPaginator(ObjectPaginator):
    """Meetings: identity is the email of the first associated contact."""

    object_type = "meetings"

    async def build_events(self, records, session, last_pulled):
        meetings = [meeting for meeting in records if meeting.get("properties")]
        emails = await self.resolver.meeting_contact_emails(meetings, session) if meetings else {}

        now = utcnow()
        events = []

        for meeting in meetings:
            properties = meeting["properties"]
            meeting_id = str(meeting.get("id"))

            meeting_properties = filter_null_values({
                "meeting_id": meeting_id,
                "meeting_timestamp": properties.get("hs_timestamp"),
                "meeting_hubspot_owner_id": properties.get("hubspot_owner_id"),
                "meeting_title": properties.get("hs_meeting_title"),
                "meeting_start_time": properties.get("hs_meeting_start_time"),
                "meeting_end_time": properties.get("hs_meeting_end_time"),
                "meeting_outcome": properties.get("hs_meeting_outcome"),
            })

            action_name, action_date = self.classify(meeting, last_pulled, now)
            events.append(
                RawSyncEvent(
                    action_name=action_name,
                    action_date=action_date,
                    properties={"meeting": meeting_properties},
                    identity=emails.get(meeting_id),
                )
            )
        return events


PAGINATOR_CLASSES = {
    "contacts": ContactPaginator,
    "companies": CompanyPaginator,
    "meetings": MeetingPaginator,
}
