"""
HubSpot object schema used by the incremental sync.

For each synced object type: the search endpoint name, the property that
tracks modification time (contacts differ from everything else), the
properties to request, and the event label.
"""

from typing import Any, Dict, List

SCHEMA_MAPPING: Dict[str, Dict[str, Any]] = {
    "companies": {
        "label": "Company",
        "modified_property": "hs_lastmodifieddate",
        "properties": [
            "name",
            "domain",
            "country",
            "industry",
            "description",
            "annualrevenue",
            "numberofemployees",
            "hs_lead_status",
        ],
    },
    "contacts": {
        "label": "Contact",
        "modified_property": "lastmodifieddate",
        "properties": [
            "firstname",
            "lastname",
            "jobtitle",
            "email",
            "hubspotscore",
            "hs_lead_status",
            "hs_analytics_source",
            "hs_latest_source",
        ],
    },
    "meetings": {
        "label": "Meeting",
        "modified_property": "hs_lastmodifieddate",
        "properties": [
            "hs_timestamp",
            "hs_meeting_title",
            "hubspot_owner_id",
            "hs_meeting_body",
            "hs_meeting_start_time",
            "hs_meeting_end_time",
            "hs_meeting_outcome",
        ],
    },
}


def get_label(object_type: str) -> str:
    """Event label for an object type (e.g. "contacts" -> "Contact")."""
    return SCHEMA_MAPPING[object_type]["label"]


def get_modified_property(object_type: str) -> str:
    return SCHEMA_MAPPING[object_type]["modified_property"]


def get_properties(object_type: str) -> List[str]:
    return list(SCHEMA_MAPPING[object_type]["properties"])
