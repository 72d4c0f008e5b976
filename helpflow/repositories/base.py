# helpflow/repositories/base.py
"""Storage contract the transition engine and services depend on.

The engine itself only needs ``get_by_id``, ``compare_and_update``,
``append_history`` and ``get_match``; the rest serves request creation,
developer applications and history queries. Adapters: MongoDB
(``requests_repo``) and process memory (``memory``).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from helpflow.models.common import MatchStatus
from helpflow.models.request import HistoryEntry, Match, TicketRequest
from helpflow.models.status import RequestStatus


class RequestRepository(ABC):

    @abstractmethod
    async def get_by_id(self, request_id: str) -> Optional[TicketRequest]:
        """The stored request, or None when it does not exist."""

    @abstractmethod
    async def compare_and_update(
        self, request_id: str, expected_status: RequestStatus, patch: Dict[str, Any]
    ) -> Optional[TicketRequest]:
        """Applies ``patch`` only if the stored status still equals ``expected_status``.

        Returns the updated request, or None when another writer got there
        first (or the request vanished).
        """

    @abstractmethod
    async def append_history(self, entry: HistoryEntry) -> None:
        """Best-effort append; implementations log failures instead of raising."""

    @abstractmethod
    async def insert(self, request: TicketRequest) -> TicketRequest:
        ...

    @abstractmethod
    async def list_history(self, request_id: str) -> List[HistoryEntry]:
        """Entries of one request ordered by ``changed_at``."""

    @abstractmethod
    async def get_match(self, request_id: str, developer_id: str) -> Optional[Match]:
        ...

    @abstractmethod
    async def get_match_by_id(self, match_id: str) -> Optional[Match]:
        ...

    @abstractmethod
    async def insert_match(self, match: Match) -> Match:
        """Raises ValueError if the developer already applied to the request."""

    @abstractmethod
    async def list_matches(self, request_id: str) -> List[Match]:
        ...

    @abstractmethod
    async def update_match_status(self, match_id: str, status: MatchStatus) -> Optional[Match]:
        ...

    @abstractmethod
    async def reject_other_matches(self, request_id: str, keep_match_id: str) -> int:
        """Rejects every other pending or approved match of the request; returns how many."""
