"""
HubSpot Sync Services.

Incremental HubSpot CRM sync into the action event store.
"""

from .action_batcher import ActionBatcher, format_action
from .associations import AssociationResolver
from .credentials import CredentialRefresher
from .error_tracker import ErrorTracker, StageError
from .paginators import (
    CompanyPaginator,
    ContactPaginator,
    MeetingPaginator,
    ObjectPaginator,
    PaginationCursor,
)
from .property_filter import filter_null_values, normalize_property_name
from .retry import CallResult, RetryExecutor
from .session import AccountSession
from .sync_orchestrator import HubSpotSyncOrchestrator, SyncRunResult

__all__ = [
    "AccountSession",
    "ActionBatcher",
    "AssociationResolver",
    "CallResult",
    "CompanyPaginator",
    "ContactPaginator",
    "CredentialRefresher",
    "ErrorTracker",
    "HubSpotSyncOrchestrator",
    "MeetingPaginator",
    "ObjectPaginator",
    "PaginationCursor",
    "RetryExecutor",
    "StageError",
    "SyncRunResult",
    "filter_null_values",
    "format_action",
    "normalize_property_name",
]
