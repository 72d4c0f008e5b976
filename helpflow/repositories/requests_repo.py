# helpflow/repositories/requests_repo.py
import logging
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from helpflow.core.config import settings
from helpflow.core.db import get_db
from helpflow.models.common import MatchStatus
from helpflow.models.request import HistoryEntry, Match, TicketRequest, utcnow
from helpflow.models.status import RequestStatus
from helpflow.repositories.base import RequestRepository

logger = logging.getLogger(__name__)

# Mongo's _id never leaves the adapter
_NO_ID = {"_id": 0}


def _dump(model) -> dict:
    return model.model_dump(mode="python")


class MongoRequestRepository(RequestRepository):

    def __init__(self, db=None):
        self.db = db if db is not None else get_db()
        self.requests = self.db[settings.requests_collection]
        self.history = self.db[settings.history_collection]
        self.matches = self.db[settings.matches_collection]

    async def get_by_id(self, request_id: str) -> Optional[TicketRequest]:
        doc = await self.requests.find_one({"id": request_id}, _NO_ID)
        return TicketRequest.model_validate(doc) if doc else None

    async def compare_and_update(
        self, request_id: str, expected_status: RequestStatus, patch: Dict[str, Any]
    ) -> Optional[TicketRequest]:
        sets = {k: (v.value if isinstance(v, RequestStatus) else v) for k, v in patch.items()}
        doc = await self.requests.find_one_and_update(
            {"id": request_id, "status": expected_status.value},
            {"$set": sets},
            projection=_NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return TicketRequest.model_validate(doc) if doc else None

    async def append_history(self, entry: HistoryEntry) -> None:
        doc = _dump(entry)
        doc["new_status"] = entry.new_status.value
        doc["previous_status"] = entry.previous_status.value if entry.previous_status else None
        try:
            await self.history.insert_one(doc)
        except PyMongoError:
            logger.exception("append_history: could not store entry %s for request %s", entry.id, entry.request_id)

    async def insert(self, request: TicketRequest) -> TicketRequest:
        doc = _dump(request)
        doc["status"] = request.status.value
        await self.requests.insert_one(doc)
        return request

    async def list_history(self, request_id: str, limit: int = 500) -> List[HistoryEntry]:
        cur = self.history.find({"request_id": request_id}, _NO_ID).sort([("changed_at", 1), ("_id", 1)]).limit(limit)
        return [HistoryEntry.model_validate(d) for d in await cur.to_list(length=limit)]

    async def get_match(self, request_id: str, developer_id: str) -> Optional[Match]:
        doc = await self.matches.find_one({"request_id": request_id, "developer_id": developer_id}, _NO_ID)
        return Match.model_validate(doc) if doc else None

    async def get_match_by_id(self, match_id: str) -> Optional[Match]:
        doc = await self.matches.find_one({"id": match_id}, _NO_ID)
        return Match.model_validate(doc) if doc else None

    async def insert_match(self, match: Match) -> Match:
        doc = _dump(match)
        doc["status"] = match.status.value
        try:
            await self.matches.insert_one(doc)
        except DuplicateKeyError:
            raise ValueError("developer already applied to this request")
        return match

    async def list_matches(self, request_id: str, limit: int = 200) -> List[Match]:
        cur = self.matches.find({"request_id": request_id}, _NO_ID).sort("created_at", -1).limit(limit)
        return [Match.model_validate(d) for d in await cur.to_list(length=limit)]

    async def update_match_status(self, match_id: str, status: MatchStatus) -> Optional[Match]:
        doc = await self.matches.find_one_and_update(
            {"id": match_id},
            {"$set": {"status": status.value, "updated_at": utcnow()}},
            projection=_NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Match.model_validate(doc) if doc else None

    async def reject_other_matches(self, request_id: str, keep_match_id: str) -> int:
        res = await self.matches.update_many(
            {"request_id": request_id, "id": {"$ne": keep_match_id}, "status": {"$ne": MatchStatus.REJECTED.value}},
            {"$set": {"status": MatchStatus.REJECTED.value, "updated_at": utcnow()}},
        )
        return res.modified_count
