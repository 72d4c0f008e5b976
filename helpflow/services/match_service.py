# helpflow/services/match_service.py
"""Developer applications and the client's decision on them.

Applying to a request in ``pending_match`` also moves it through
``dev_requested`` to ``awaiting_client_approval``. Approving one
application moves the request to ``approved`` and rejects every other
application; rejecting the developer the request is waiting on sends it
back to ``pending_match``, as does an abandoned request. All status
changes go through the engine.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from helpflow.models.common import MatchStatus, Role
from helpflow.models.request import ApplicationPayload, Match
from helpflow.models.status import RequestStatus
from helpflow.services.request_service import SYSTEM_ACTOR
from helpflow.services.transition_engine import TransitionEngine, TransitionFailed, TransitionOk

logger = logging.getLogger(__name__)

# statuses that still accept new applications
OPEN_FOR_APPLICATIONS = frozenset({
    RequestStatus.PENDING_MATCH,
    RequestStatus.DEV_REQUESTED,
    RequestStatus.AWAITING_CLIENT_APPROVAL,
})

Transition = Union[TransitionOk, TransitionFailed]


@dataclass
class ApplicationOutcome:
    match: Match
    transitions: List[Transition] = field(default_factory=list)


@dataclass
class DecisionOutcome:
    match: Optional[Match]
    transition: Optional[Transition] = None


async def submit_application(engine: TransitionEngine, request_id: str, developer_id: str, payload: ApplicationPayload) -> ApplicationOutcome:
    repo = engine.repository
    req = await repo.get_by_id(request_id)
    if req is None:
        raise LookupError("Request not found")
    if req.status not in OPEN_FOR_APPLICATIONS:
        raise ValueError(f"Request is not accepting applications (status: {req.status.value})")

    match = await repo.insert_match(Match(request_id=request_id, developer_id=developer_id, **payload.model_dump()))
    logger.info("developer %s applied to request %s", developer_id, request_id)

    out = ApplicationOutcome(match=match)
    if req.status != RequestStatus.PENDING_MATCH:
        return out
    first = await engine.attempt_transition(
        request_id, RequestStatus.DEV_REQUESTED, Role.DEVELOPER, developer_id, details={"match_id": match.id},
    )
    out.transitions.append(first)
    out.transitions.extend(await run_follow_ups(engine, first, developer_id))
    return out


async def run_follow_ups(engine: TransitionEngine, result: Transition, actor_id: str) -> List[Transition]:
    """System moves that follow a developer's move straight away.

    ``dev_requested`` goes on to ``awaiting_client_approval``. An abandoned
    request gets the abandoning developer's application rejected and goes
    back to ``pending_match`` with nobody assigned.
    """
    if not result.ok:
        return []
    req = result.data
    if req.status == RequestStatus.DEV_REQUESTED:
        return [await engine.attempt_transition(
            req.id, RequestStatus.AWAITING_CLIENT_APPROVAL, Role.SYSTEM, SYSTEM_ACTOR,
        )]
    if req.status == RequestStatus.ABANDONED_BY_DEV:
        match = await engine.repository.get_match(req.id, actor_id)
        if match is not None:
            await engine.repository.update_match_status(match.id, MatchStatus.REJECTED)
        logger.info("request %s abandoned by %s, reopening for matching", req.id, actor_id)
        return [await engine.attempt_transition(
            req.id, RequestStatus.PENDING_MATCH, Role.SYSTEM, SYSTEM_ACTOR, details={"abandoned_by": actor_id},
        )]
    return []


async def decide_application(engine: TransitionEngine, match_id: str, client_id: str, decision: MatchStatus) -> DecisionOutcome:
    repo = engine.repository
    match = await repo.get_match_by_id(match_id)
    if match is None:
        raise LookupError("Application not found")
    req = await repo.get_by_id(match.request_id)
    if req is None:
        raise LookupError("Request not found")
    if req.client_id != client_id:
        raise PermissionError("You are not authorized to update this application")

    if decision == MatchStatus.APPROVED:
        res = await engine.attempt_transition(
            req.id, RequestStatus.APPROVED, Role.CLIENT, client_id,
            details={"developer_id": match.developer_id, "match_id": match.id},
        )
        if not res.ok:
            return DecisionOutcome(match=match, transition=res)
        approved = await repo.update_match_status(match.id, MatchStatus.APPROVED)
        try:
            n = await repo.reject_other_matches(req.id, match.id)
            logger.info("request %s: approved %s, rejected %d other applications", req.id, match.id, n)
        except Exception:
            # the approval itself already happened
            logger.exception("request %s: could not reject the other applications", req.id)
        return DecisionOutcome(match=approved, transition=res)

    rejected = await repo.update_match_status(match.id, MatchStatus.REJECTED)
    res = None
    if req.status == RequestStatus.AWAITING_CLIENT_APPROVAL and req.developer_id == match.developer_id:
        res = await engine.attempt_transition(
            req.id, RequestStatus.PENDING_MATCH, Role.CLIENT, client_id, details={"match_id": match.id},
        )
    return DecisionOutcome(match=rejected, transition=res)
