"""
In-memory event types of the sync engine.

RawSyncEvent is what a paginator produces for one changed record;
ActionRecord is its persisted, analytics-ready form.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Union

PropertyValue = Union[str, int, float, datetime]
PropertyMap = Dict[str, PropertyValue]

# Bucket merge order when formatting; later buckets win on key clashes
PROPERTY_BUCKETS = ("meeting", "company", "contact")


@dataclass
class RawSyncEvent:
    """One detected create/update, before persistence."""
    action_name: str
    action_date: datetime
    properties: Dict[str, PropertyMap] = field(default_factory=dict)
    identity: Optional[str] = None
    include_in_analytics: int = 0

    @property
    def group(self) -> str:
        """Lower-cased leading word of the event name ("contact")."""
        return self.action_name.split(" ")[0].lower()


@dataclass
class ActionRecord:
    """Persisted form of a RawSyncEvent."""
    type: str
    timestamp: datetime
    properties: PropertyMap
    identity: Optional[str] = None
    include_in_analytics: int = 0
