# helpflow/services/transition_engine.py
"""The single code path that changes a request's status.

attempt_transition:
    1. load the request (NotFound)
    2. normalize current and requested status (InvalidStatus)
    3. requested == current is a successful no-op: no write, no history
    4. authorize against the transition table; clients may always cancel
       a non-terminal request (Forbidden)
    5. developers need an approved match, except when requesting
       assignment or abandoning (NotAssigned)
    6. derive field updates from the per-status hooks
    7. compare-and-update on the status read in step 1 (Conflict)
    8. record history best-effort; its failure is logged, not returned

Steps 2-6 are synchronous and free of I/O (``authorize``,
``check_assignment``, ``evaluate_transition``). Every failure comes back as
a ``TransitionFailed`` value; nothing is raised to the caller.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Callable, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from helpflow.models.common import MatchStatus, Role, parse_role
from helpflow.models.request import Match, TicketRequest, utcnow
from helpflow.models.status import TERMINAL_STATUSES, RequestStatus, label_of, normalize_status, parse_status
from helpflow.services.effects import TransitionContext, derive_patch
from helpflow.services.history import HistoryRecorder
from helpflow.services.transitions import find_rule, is_universal_cancel

logger = logging.getLogger(__name__)


class TransitionErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_STATUS = "InvalidStatus"
    FORBIDDEN = "Forbidden"
    NOT_ASSIGNED = "NotAssigned"
    CONFLICT = "Conflict"
    UNKNOWN = "Unknown"


class TransitionOk(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["ok"] = "ok"
    data: TicketRequest

    @property
    def ok(self) -> bool:
        return True


class TransitionFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    kind: TransitionErrorKind
    message: str
    current_status: Optional[str] = None
    requested_status: str
    acting_role: str

    @property
    def ok(self) -> bool:
        return False


TransitionResult = Annotated[Union[TransitionOk, TransitionFailed], Field(discriminator="status")]


# Developer moves that do not need an approved match
NO_MATCH_REQUIRED = frozenset({RequestStatus.DEV_REQUESTED})
ANY_MATCH_REQUIRED = frozenset({RequestStatus.ABANDONED_BY_DEV})


def _role_name(role) -> str:
    r = parse_role(role)
    return r.value if r else str(role)


def failure(kind, snapshot_status, requested, role, request_id=None) -> TransitionFailed:
    cur = parse_status(snapshot_status) if snapshot_status is not None else None
    req = parse_status(requested)
    cur_label = label_of(cur) if cur else None
    req_label = label_of(req) if req else str(requested)
    who = _role_name(role)

    if kind == TransitionErrorKind.NOT_FOUND:
        msg = f"Request {request_id} was not found."
    elif kind == TransitionErrorKind.INVALID_STATUS:
        msg = f"'{requested}' is not a known request status."
    elif kind == TransitionErrorKind.FORBIDDEN:
        if cur in TERMINAL_STATUSES:
            msg = f"This request is {cur_label} and its status can no longer change."
        elif parse_role(role) is None:
            msg = f"'{who}' is not a role that can change request status."
        else:
            msg = f"As the {who}, you are not permitted to move this request from {cur_label} to {req_label}."
    elif kind == TransitionErrorKind.NOT_ASSIGNED:
        msg = f"Only the developer approved for this request can move it from {cur_label} to {req_label}."
    elif kind == TransitionErrorKind.CONFLICT:
        msg = f"Someone else just updated this request while it was {cur_label}; reload it and try again."
    else:
        msg = f"The request could not be moved from {cur_label or 'its current status'} to {req_label} because of an unexpected error."

    return TransitionFailed(
        kind=kind,
        message=msg,
        current_status=cur.value if cur else (None if snapshot_status is None else normalize_status(snapshot_status)),
        requested_status=req.value if req else normalize_status(requested) or str(requested),
        acting_role=who,
    )


def authorize(snapshot: TicketRequest, requested_status, acting_role) -> Tuple[Optional[RequestStatus], Optional[TransitionFailed]]:
    """Target status for an allowed (or no-op) move, else the rejection."""
    target = parse_status(requested_status)
    if target is None:
        return None, failure(TransitionErrorKind.INVALID_STATUS, snapshot.status, requested_status, acting_role)
    role = parse_role(acting_role)
    if role is None:
        return None, failure(TransitionErrorKind.FORBIDDEN, snapshot.status, target, acting_role)
    if target == snapshot.status:
        return target, None
    if is_universal_cancel(snapshot.status, target, role):
        return target, None
    if find_rule(snapshot.status, target, role) is None:
        return None, failure(TransitionErrorKind.FORBIDDEN, snapshot.status, target, role)
    return target, None


def needs_match(role, target: RequestStatus) -> bool:
    return parse_role(role) == Role.DEVELOPER and target not in NO_MATCH_REQUIRED


def check_assignment(snapshot: TicketRequest, target: RequestStatus, acting_role, match: Optional[Match]) -> Optional[TransitionFailed]:
    if not needs_match(acting_role, target):
        return None
    if target in ANY_MATCH_REQUIRED:
        # any match will do for the developer holding the request, others need an approved one
        ok = match is not None and (
            match.status == MatchStatus.APPROVED or match.developer_id == snapshot.developer_id
        )
    else:
        ok = match is not None and match.status == MatchStatus.APPROVED
    if ok:
        return None
    return failure(TransitionErrorKind.NOT_ASSIGNED, snapshot.status, target, acting_role)


def evaluate_transition(
    snapshot: TicketRequest,
    requested_status,
    acting_role,
    actor_id: str,
    match: Optional[Match],
    now: datetime,
    details: Optional[Dict[str, Any]] = None,
) -> Union[TransitionFailed, Dict[str, Any], None]:
    """Pure validation: the patch to write, None for a no-op, or the rejection."""
    target, err = authorize(snapshot, requested_status, acting_role)
    if err is not None:
        return err
    if target == snapshot.status:
        return None
    err = check_assignment(snapshot, target, acting_role, match)
    if err is not None:
        return err
    ctx = TransitionContext(
        snapshot=snapshot, target=target, role=parse_role(acting_role),
        actor_id=actor_id, now=now, details=dict(details or {}),
    )
    return derive_patch(ctx)


class TransitionEngine:
    def __init__(self, repository, recorder: Optional[HistoryRecorder] = None, clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.clock = clock or utcnow
        self.recorder = recorder or HistoryRecorder(repository, clock=self.clock)

    async def attempt_transition(
        self,
        request_id: str,
        requested_status,
        acting_role,
        actor_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Union[TransitionOk, TransitionFailed]:
        try:
            snapshot = await self.repository.get_by_id(request_id)
        except Exception:
            logger.exception("attempt_transition: could not load request %s", request_id)
            return failure(TransitionErrorKind.UNKNOWN, None, requested_status, acting_role, request_id)
        if snapshot is None:
            return failure(TransitionErrorKind.NOT_FOUND, None, requested_status, acting_role, request_id)

        target, err = authorize(snapshot, requested_status, acting_role)
        if err is not None:
            logger.info("transition rejected (%s) on %s: %s", err.kind.value, request_id, err.message)
            return err
        if target == snapshot.status:
            return TransitionOk(data=snapshot)

        match = None
        if needs_match(acting_role, target):
            try:
                match = await self.repository.get_match(request_id, actor_id)
            except Exception:
                logger.exception("attempt_transition: could not load match of %s on %s", actor_id, request_id)
                return failure(TransitionErrorKind.UNKNOWN, snapshot.status, target, acting_role, request_id)

        now = self.clock()
        planned = evaluate_transition(snapshot, target, acting_role, actor_id, match, now, details)
        if isinstance(planned, TransitionFailed):
            logger.info("transition rejected (%s) on %s: %s", planned.kind.value, request_id, planned.message)
            return planned

        try:
            updated = await self.repository.compare_and_update(request_id, snapshot.status, planned)
        except Exception:
            logger.exception("attempt_transition: write failed for %s (%s -> %s)", request_id, snapshot.status, target)
            return failure(TransitionErrorKind.UNKNOWN, snapshot.status, target, acting_role, request_id)
        if updated is None:
            logger.warning("transition conflict on %s: expected %s", request_id, snapshot.status)
            return failure(TransitionErrorKind.CONFLICT, snapshot.status, target, acting_role, request_id)

        rule = find_rule(snapshot.status, target, acting_role)
        entry = self.recorder.record(
            request_id,
            snapshot.status,
            target,
            actor_id,
            details={
                **(details or {}),
                "acting_role": _role_name(acting_role),
                "action": rule.label if rule else None,
                "fields": sorted(k for k in planned if k not in ("status", "updated_at")),
            },
            changed_at=now,
        )
        await self.recorder.persist(entry)
        logger.info("request %s: %s -> %s by %s %s", request_id, snapshot.status, target, _role_name(acting_role), actor_id)
        return TransitionOk(data=updated)
