# continuity_sync/Sync/sync_status.py
# Snapshot for a "sync status" indicator: ok / pending N changes / error.
#
# Imports
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
#
# Local Imports
from .scheduler import DebounceScheduler, SaveResult
#
#######################################################################################################################
#
# Functions:

STATE_OK = "ok"
STATE_PENDING = "pending"
STATE_ERROR = "error"


@dataclass
class SyncStatus:
    state: str
    pending_categories: List[str] = field(default_factory=list)
    failure_count: int = 0
    last_failure_message: Optional[str] = None
    last_push_at: Optional[datetime] = None
    last_pull_at: Optional[datetime] = None

    @property
    def pending_count(self) -> int:
        return len(self.pending_categories)

    def describe(self) -> str:
        if self.state == STATE_ERROR:
            return f"Sync error ({self.failure_count} failed): {self.last_failure_message}"
        if self.state == STATE_PENDING:
            return f"{self.pending_count} pending change{'s' if self.pending_count != 1 else ''}"
        return "All changes saved"


class SyncStatusTracker:
    """Keeps the timestamps the scheduler does not know about and builds `SyncStatus` snapshots."""

    def __init__(self, scheduler: DebounceScheduler):
        self.scheduler = scheduler
        self.last_push_at: Optional[datetime] = None
        self.last_pull_at: Optional[datetime] = None
        scheduler.add_result_listener(self._on_result)

    def _on_result(self, result: SaveResult):
        if result.success:
            self.last_push_at = datetime.now(timezone.utc)

    def mark_pulled(self):
        self.last_pull_at = datetime.now(timezone.utc)

    def snapshot(self) -> SyncStatus:
        pending = self.scheduler.pending_keys
        failures = self.scheduler.failure_count
        if failures:
            state = STATE_ERROR
        elif pending or self.scheduler.in_flight_count:
            state = STATE_PENDING
        else:
            state = STATE_OK
        return SyncStatus(
            state=state,
            pending_categories=pending,
            failure_count=failures,
            last_failure_message=self.scheduler.last_failure_message if failures else None,
            last_push_at=self.last_push_at,
            last_pull_at=self.last_pull_at,
        )

#
# End of sync_status.py
#######################################################################################################################
