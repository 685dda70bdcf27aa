"""
Property Filter for HubSpot records.

Strips values that carry no information before they reach the event
store: None, empty strings, and the placeholder strings HubSpot (and the
people filling in HubSpot forms) use for "no value".
"""

import re
from typing import Any, Dict, Mapping

# Compared case-insensitively after trimming
DISALLOWED_VALUES = frozenset({
    "[not provided]",
    "placeholder",
    "[[unknown]]",
    "not set",
    "not provided",
    "unknown",
    "undefined",
    "n/a",
})

_CUSTOM_FIELD_SUFFIX = re.compile(r"__c$")
_EDGE_UNDERSCORES = re.compile(r"^_+|_+$")
_REPEATED_UNDERSCORES = re.compile(r"_+")


def is_empty_value(value: Any) -> bool:
    """True for values that must never be stored as a property."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return stripped == "" or stripped.lower() in DISALLOWED_VALUES
    return False


def filter_null_values(properties: Mapping[str, Any] | None) -> Dict[str, Any]:
    """
    Remove empty and placeholder values from a flat property map.

    Example:
        >>> filter_null_values({"name": "Acme", "industry": "N/A", "score": 0})
        {"name": "Acme", "score": 0}
    """
    if not properties:
        return {}
    return {key: value for key, value in properties.items() if not is_empty_value(value)}


def normalize_property_name(key: str) -> str:
    """
    Harmonize a property name coming from another CRM.

    Lower-cases, strips a trailing custom-field suffix ("__c"), trims
    leading/trailing underscores and collapses repeated ones.

    Example:
        >>> normalize_property_name("__Lead__Source__c")
        "lead_source"
    """
    name = _CUSTOM_FIELD_SUFFIX.sub("", key.lower())
    name = _EDGE_UNDERSCORES.sub("", name)
    return _REPEATED_UNDERSCORES.sub("_", name)
