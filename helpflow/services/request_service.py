# helpflow/services/request_service.py
from typing import List, Optional

from helpflow.models.common import Role
from helpflow.models.request import HistoryEntry, RequestCreate, TicketRequest
from helpflow.models.status import INITIAL_STATUS, RequestStatus
from helpflow.services.history import HistoryRecorder
from helpflow.services.transition_engine import TransitionEngine

SYSTEM_ACTOR = "system"


async def create_request(
    engine: TransitionEngine,
    client_id: str,
    payload: RequestCreate,
    open_for_matching: bool = True,
) -> TicketRequest:
    """Stores a new request in ``submitted`` and, by default, hands it to matching."""
    now = engine.clock()
    req = TicketRequest(
        client_id=client_id,
        status=INITIAL_STATUS,
        created_at=now,
        updated_at=now,
        **payload.model_dump(),
    )
    await engine.repository.insert(req)
    recorder: HistoryRecorder = engine.recorder
    await recorder.record_and_persist(
        req.id, None, INITIAL_STATUS, client_id,
        details={"acting_role": Role.CLIENT.value, "title": req.title},
        change_type="CREATED", changed_at=now,
    )
    if not open_for_matching:
        return req
    res = await engine.attempt_transition(req.id, RequestStatus.PENDING_MATCH, Role.SYSTEM, SYSTEM_ACTOR)
    # a client cancelling in between is fine; they keep whatever is stored
    return res.data if res.ok else (await engine.repository.get_by_id(req.id) or req)


async def get_request(repo, request_id: str) -> Optional[TicketRequest]:
    return await repo.get_by_id(request_id)


async def get_history(repo, request_id: str) -> List[HistoryEntry]:
    return await repo.list_history(request_id)
