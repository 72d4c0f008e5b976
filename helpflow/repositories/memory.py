# helpflow/repositories/memory.py
import itertools
from typing import Any, Dict, List, Optional

from helpflow.models.common import MatchStatus
from helpflow.models.request import HistoryEntry, Match, TicketRequest, utcnow
from helpflow.models.status import RequestStatus
from helpflow.repositories.base import RequestRepository


class InMemoryRequestRepository(RequestRepository):
    """Dict-backed store for local runs and tests.

    Methods never await between reading and writing, so under a single
    event loop each compare-and-update is atomic.
    """

    def __init__(self):
        self.requests: Dict[str, TicketRequest] = {}
        self.history: List[HistoryEntry] = []
        self.matches: Dict[str, Match] = {}
        self._seq = itertools.count()
        self._history_seq: Dict[str, int] = {}

    async def get_by_id(self, request_id: str) -> Optional[TicketRequest]:
        return self.requests.get(request_id)

    async def compare_and_update(
        self, request_id: str, expected_status: RequestStatus, patch: Dict[str, Any]
    ) -> Optional[TicketRequest]:
        cur = self.requests.get(request_id)
        if cur is None or cur.status != expected_status:
            return None
        updated = TicketRequest.model_validate({**cur.model_dump(), **patch})
        self.requests[request_id] = updated
        return updated

    async def append_history(self, entry: HistoryEntry) -> None:
        self._history_seq[entry.id] = next(self._seq)
        self.history.append(entry)

    async def insert(self, request: TicketRequest) -> TicketRequest:
        if request.id in self.requests:
            raise ValueError(f"request {request.id} already exists")
        self.requests[request.id] = request
        return request

    async def list_history(self, request_id: str) -> List[HistoryEntry]:
        items = [e for e in self.history if e.request_id == request_id]
        return sorted(items, key=lambda e: (e.changed_at, self._history_seq[e.id]))

    async def get_match(self, request_id: str, developer_id: str) -> Optional[Match]:
        for m in self.matches.values():
            if m.request_id == request_id and m.developer_id == developer_id:
                return m
        return None

    async def get_match_by_id(self, match_id: str) -> Optional[Match]:
        return self.matches.get(match_id)

    async def insert_match(self, match: Match) -> Match:
        if await self.get_match(match.request_id, match.developer_id) is not None:
            raise ValueError("developer already applied to this request")
        self.matches[match.id] = match
        return match

    async def list_matches(self, request_id: str) -> List[Match]:
        items = [m for m in self.matches.values() if m.request_id == request_id]
        return sorted(items, key=lambda m: m.created_at, reverse=True)

    async def update_match_status(self, match_id: str, status: MatchStatus) -> Optional[Match]:
        m = self.matches.get(match_id)
        if m is None:
            return None
        m = m.model_copy(update={"status": status, "updated_at": utcnow()})
        self.matches[match_id] = m
        return m

    async def reject_other_matches(self, request_id: str, keep_match_id: str) -> int:
        n = 0
        for m in list(self.matches.values()):
            if m.request_id == request_id and m.id != keep_match_id and m.status != MatchStatus.REJECTED:
                await self.update_match_status(m.id, MatchStatus.REJECTED)
                n += 1
        return n
