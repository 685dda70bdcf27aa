"""
Error Tracker for HubSpot Sync Runs.

Collects the failures the orchestrator isolates (token refresh, one
object type, the final drain) so they can be reported with the run result.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class StageError:
    """A failed stage of one account's sync."""
    operation: str
    hub_id: str
    error: str
    context: Dict[str, Any] = field(default_factory=dict)


class ErrorTracker:
    """Tracks isolated stage failures during a sync run."""

    def __init__(self):
        self.errors: List[StageError] = []

    def track(
        self,
        operation: str,
        hub_id: str,
        error: Exception,
        context: Dict[str, Any] = None
    ):
        """
        Record a stage failure and log it.

        Args:
            operation: Failed stage (e.g. "processContacts")
            hub_id: HubSpot account the stage ran for
            error: Exception that ended the stage
            context: Additional logging context (e.g. domain api_key)
        """
        stage_error = StageError(
            operation=operation,
            hub_id=hub_id,
            error=str(error),
            context=context or {},
        )
        self.errors.append(stage_error)

        logger.error(
            f"❌ {operation} failed for hub {hub_id}: {error}",
            extra={**(context or {}), "operation": operation, "hub_id": hub_id},
        )

    def get_error_messages(self, limit: int = 15) -> List[str]:
        """Formatted messages for API responses, at most ``limit``."""
        return [f"{err.operation} (hub {err.hub_id}): {err.error}" for err in self.errors[:limit]]

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def clear(self):
        self.errors.clear()
