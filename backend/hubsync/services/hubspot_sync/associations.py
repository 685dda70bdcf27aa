"""
Association Resolver.

Cross-references HubSpot objects for one page of search results:
- contacts -> first associated company (one batched read per page)
- meetings -> email of the first associated contact (one lookup per meeting)
"""

import logging
from typing import Any, Dict, Iterable, List

from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.services.hubspot_sync.retry import RetryExecutor
from hubsync.services.hubspot_sync.session import AccountSession

logger = logging.getLogger(__name__)


class AssociationResolver:
    """Resolves contact->company and meeting->contact links."""

    def __init__(self, client: HubSpotClient, executor: RetryExecutor):
        self.client = client
        self.executor = executor

    async def contact_companies(
        self,
        contact_ids: Iterable[str],
        session: AccountSession,
    ) -> Dict[str, str]:
        """
        Map each contact id to its first associated company id.

        Contacts without an association are left out of the map. A failed
        batch read propagates: it aborts the contact sync like a failed search.
        """
        ids = [str(contact_id) for contact_id in contact_ids]
        if not ids:
            return {}

        results = await self.executor.execute(
            lambda: self.client.batch_read_associations("contacts", "companies", ids, session.access_token),
            session,
            operation="readContactCompanyAssociations",
        )

        associations: Dict[str, str] = {}
        for result in results or []:
            source = result.get("from") or {}
            targets = result.get("to") or []
            company_id = targets[0].get("id") if targets else None
            if source.get("id") is None or company_id is None:
                continue
            associations[str(source["id"])] = str(company_id)

        logger.debug(f"Resolved companies for {len(associations)}/{len(ids)} contacts")
        return associations

    async def meeting_contact_emails(
        self,
        meetings: List[Dict[str, Any]],
        session: AccountSession,
    ) -> Dict[str, str]:
        """
        Map each meeting id to the email of its first associated contact.

        Meetings are looked up one at a time. A failed lookup is logged and
        that meeting simply gets no identity.
        """
        logger.info(f"Fetching associated contacts for {len(meetings)} meetings")

        emails: Dict[str, str] = {}
        for meeting in meetings:
            meeting_id = str(meeting.get("id"))
            try:
                email = await self._meeting_contact_email(meeting_id, session)
            except Exception as e:
                logger.warning(
                    f"Error fetching associated contact for meeting {meeting_id}: {e}",
                    extra={**session.log_context("fetchAssociatedContacts"), "meeting_id": meeting_id},
                )
                continue

            if email:
                emails[meeting_id] = email

        return emails

    async def _meeting_contact_email(self, meeting_id: str, session: AccountSession) -> str | None:
        associations = await self.executor.execute(
            lambda: self.client.get_associations("meetings", meeting_id, "contacts", session.access_token),
            session,
            operation="getMeetingContactAssociations",
        )
        if not associations:
            return None

        contact_id = associations[0].get("toObjectId")
        if contact_id is None:
            return None

        contact = await self.executor.execute(
            lambda: self.client.get_object("contacts", str(contact_id), ["email"], session.access_token),
            session,
            operation="getContactEmail",
        )
        return (contact.get("properties") or {}).get("email") or None
