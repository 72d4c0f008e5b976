# helpflow/services/history.py
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from helpflow.models.common import ChangeType
from helpflow.models.request import HistoryEntry, utcnow
from helpflow.models.status import RequestStatus

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """Builds audit entries and stores them best-effort.

    ``record`` never touches storage and cannot fail for valid statuses.
    ``persist`` swallows storage errors after logging them, since a lost
    audit line must never undo a committed status change.
    """

    def __init__(self, repository, clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.clock = clock or utcnow

    def record(
        self,
        request_id: str,
        previous_status: Optional[RequestStatus],
        new_status: RequestStatus,
        actor_id: str,
        details: Optional[Dict[str, Any]] = None,
        change_type: ChangeType = "STATUS_CHANGE",
        changed_at: Optional[datetime] = None,
    ) -> HistoryEntry:
        return HistoryEntry(
            request_id=request_id,
            change_type=change_type,
            previous_status=previous_status,
            new_status=new_status,
            changed_by=actor_id,
            changed_at=changed_at or self.clock(),
            details=dict(details or {}),
        )

    async def persist(self, entry: HistoryEntry) -> bool:
        try:
            await self.repository.append_history(entry)
        except Exception:
            logger.exception(
                "history write failed for request %s (%s -> %s)",
                entry.request_id, entry.previous_status, entry.new_status,
            )
            return False
        return True

    async def record_and_persist(
        self,
        request_id: str,
        previous_status: Optional[RequestStatus],
        new_status: RequestStatus,
        actor_id: str,
        details: Optional[Dict[str, Any]] = None,
        change_type: ChangeType = "STATUS_CHANGE",
        changed_at: Optional[datetime] = None,
    ) -> HistoryEntry:
        entry = self.record(request_id, previous_status, new_status, actor_id, details, change_type, changed_at)
        await self.persist(entry)
        return entry
