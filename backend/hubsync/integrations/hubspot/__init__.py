"""
HubSpot integration.
"""

from .client import HubSpotAPIError, HubSpotAuthError, HubSpotClient
from .schema import SCHEMA_MAPPING, get_label, get_modified_property, get_properties

__all__ = [
    "HubSpotAPIError",
    "HubSpotAuthError",
    "HubSpotClient",
    "SCHEMA_MAPPING",
    "get_label",
    "get_modified_property",
    "get_properties",
]
