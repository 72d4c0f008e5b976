# helpflow/services/effects.py
"""Field updates that ride along with a status change.

``STATUS_EFFECTS`` maps the status being entered to the hooks that run;
every hook returns a partial patch. ``updated_at`` is always set.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from helpflow.models.common import Role
from helpflow.models.request import TicketRequest
from helpflow.models.status import RequestStatus

S = RequestStatus


@dataclass(frozen=True)
class TransitionContext:
    snapshot: TicketRequest
    target: RequestStatus
    role: Role
    actor_id: str
    now: datetime
    details: Dict[str, Any] = field(default_factory=dict)


Hook = Callable[[TransitionContext], Dict[str, Any]]


def stamp(field_name: str) -> Hook:
    def hook(ctx: TransitionContext):
        return {field_name: ctx.now}
    hook.__name__ = f"stamp_{field_name}"
    return hook


def increment(field_name: str) -> Hook:
    # safe without $inc: the write is conditioned on the status read with this snapshot
    def hook(ctx: TransitionContext):
        return {field_name: (getattr(ctx.snapshot, field_name) or 0) + 1}
    hook.__name__ = f"increment_{field_name}"
    return hook


def assign_acting_developer(ctx: TransitionContext):
    return {"developer_id": ctx.actor_id} if ctx.role == Role.DEVELOPER else {}


def assign_approved_developer(ctx: TransitionContext):
    dev = ctx.details.get("developer_id")
    return {"developer_id": dev} if dev else {}


def release_developer_from(*sources: RequestStatus) -> Hook:
    def hook(ctx: TransitionContext):
        return {"developer_id": None} if ctx.snapshot.status in sources else {}
    hook.__name__ = "release_developer"
    return hook


STATUS_EFFECTS: Dict[RequestStatus, Tuple[Hook, ...]] = {
    S.DEV_REQUESTED: (assign_acting_developer,),
    S.APPROVED: (assign_approved_developer,),
    S.PENDING_MATCH: (release_developer_from(S.AWAITING_CLIENT_APPROVAL, S.ABANDONED_BY_DEV),),
    S.READY_FOR_QA: (stamp("qa_start_time"),),
    S.QA_FAIL: (stamp("client_review_start_time"),),
    S.QA_PASS: (stamp("client_review_complete_time"),),
    S.RESOLVED: (stamp("completion_date"),),
    S.REOPENED: (increment("reopen_count"),),
}


def derive_patch(ctx: TransitionContext, effects: Optional[Dict[RequestStatus, Tuple[Hook, ...]]] = None) -> Dict[str, Any]:
    patch: Dict[str, Any] = {"status": ctx.target, "updated_at": ctx.now}
    for hook in (effects if effects is not None else STATUS_EFFECTS).get(ctx.target, ()):
        patch.update(hook(ctx))
    return patch
