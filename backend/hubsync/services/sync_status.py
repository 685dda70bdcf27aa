"""
Live status of the HubSpot sync.

The orchestrator reports phases and counters here; the API serves the
snapshot so a running sync can be followed from outside the process.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from hubsync.utils.dates import utcnow

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Where a sync run currently is."""
    IDLE = "idle"
    LOADING_DOMAIN = "loading_domain"
    REFRESHING_TOKEN = "refreshing_token"
    SYNCING_CONTACTS = "syncing_contacts"
    SYNCING_COMPANIES = "syncing_companies"
    SYNCING_MEETINGS = "syncing_meetings"
    FLUSHING = "flushing"
    COMPLETED = "completed"
    ERROR = "error"


OBJECT_PHASES = {
    "contacts": SyncPhase.SYNCING_CONTACTS,
    "companies": SyncPhase.SYNCING_COMPANIES,
    "meetings": SyncPhase.SYNCING_MEETINGS,
}

FINISHED_PHASES = (SyncPhase.IDLE, SyncPhase.COMPLETED, SyncPhase.ERROR)


class SyncStatusTracker:
    """
    Process-wide sync status.

    Every instantiation returns the same tracker, so the orchestrator and
    the API endpoints share one view of the current run.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.reset()
        return cls._instance

    def reset(self, phase: SyncPhase = SyncPhase.IDLE, step: str = "Waiting to start..."):
        """Forget the previous run."""
        self._started: Optional[datetime] = None
        self._finished: Optional[datetime] = None
        self.status: Dict[str, Any] = {
            "phase": phase,
            "started_at": None,
            "current_step": step,
            "progress": {
                "accounts_total": 0,
                "accounts_processed": 0,
                "current_hub_id": None,
                "current_object_type": None,
                "events": {object_type: 0 for object_type in OBJECT_PHASES},
                "actions_flushed": 0,
            },
            "errors": [],
            "completed_at": None,
            "duration_seconds": 0,
        }

    @property
    def progress(self) -> Dict[str, Any]:
        return self.status["progress"]

    def start_sync(self, accounts_total: int = 0):
        self.reset(SyncPhase.LOADING_DOMAIN, "Loading domain and HubSpot accounts...")
        self._started = utcnow()
        self.status["started_at"] = self._started.isoformat()
        self.progress["accounts_total"] = accounts_total
        logger.info("🚀 HubSpot sync started")

    def set_accounts_total(self, count: int):
        self.progress["accounts_total"] = count

    def update_phase(self, phase: SyncPhase, step: str):
        self.status["phase"] = phase
        self.status["current_step"] = step
        logger.info(f"📍 {phase.value}: {step}")

    def start_account(self, hub_id: str):
        self.progress["current_hub_id"] = hub_id
        self.progress["current_object_type"] = None

    def start_object_type(self, hub_id: str, object_type: str):
        """Enter the paginator phase of one object type."""
        self.progress["current_object_type"] = object_type
        self.update_phase(OBJECT_PHASES[object_type], f"Syncing {object_type} for hub {hub_id}...")

    def update_events(self, object_type: str, count: int):
        events = self.progress["events"]
        events[object_type] += count
        logger.info(f"📥 {count} {object_type} events pushed ({events[object_type]} this run)")

    def update_flushed(self, count: int):
        self.progress["actions_flushed"] += count

    def finish_account(self):
        self.progress["accounts_processed"] += 1
        self.progress["current_object_type"] = None

    def add_error(self, error: str):
        self.status["errors"].append({"timestamp": utcnow().isoformat(), "error": error})
        logger.error(f"❌ {error}")

    def complete_sync(self, success: bool = True):
        """Close the run as completed, or as failed when ``success`` is False."""
        self._finished = utcnow()
        self.status["completed_at"] = self._finished.isoformat()
        if self._started is not None:
            self.status["duration_seconds"] = (self._finished - self._started).total_seconds()

        if not success:
            self.update_phase(SyncPhase.ERROR, "❌ Sync failed")
            return

        self.update_phase(SyncPhase.COMPLETED, "✅ Sync completed")
        logger.info(
            f"📊 {self.progress['accounts_processed']}/{self.progress['accounts_total']} accounts, "
            f"events {self.progress['events']}, {self.progress['actions_flushed']} actions stored "
            f"in {self.status['duration_seconds']:.1f}s"
        )

    def get_status(self) -> Dict[str, Any]:
        """Snapshot for the API."""
        return self.status.copy()

    def is_running(self) -> bool:
        return self.status["phase"] not in FINISHED_PHASES


sync_status = SyncStatusTracker()
