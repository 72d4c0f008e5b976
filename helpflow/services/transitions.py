# helpflow/services/transitions.py
"""Declarative transition table.

Each rule says who may move a request from one status to another, plus the
button label and variant the UI shows for it. Clients may additionally
cancel any non-terminal request; that edge is layered on in ``rules_for``
instead of being repeated for every status.
"""
from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict

from helpflow.models.common import ButtonVariant, Role, parse_role
from helpflow.models.status import TERMINAL_STATUSES, RequestStatus, parse_status

S = RequestStatus
CLIENT, DEVELOPER, SYSTEM = Role.CLIENT, Role.DEVELOPER, Role.SYSTEM


class TransitionRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_status: RequestStatus
    to_status: RequestStatus
    roles: FrozenSet[Role]
    label: str
    variant: ButtonVariant = "default"
    requires_comment: bool = False


def _rule(frm, to, roles, label, variant="default", requires_comment=False) -> TransitionRule:
    return TransitionRule(
        from_status=frm, to_status=to, roles=frozenset(roles),
        label=label, variant=variant, requires_comment=requires_comment,
    )


# Statuses a developer may walk away from once assigned
ABANDONABLE = (S.APPROVED, S.REQUIREMENTS_REVIEW, S.NEED_MORE_INFO, S.IN_PROGRESS, S.QA_FAIL, S.REOPENED)

TRANSITION_RULES: Tuple[TransitionRule, ...] = (
    # automated
    _rule(S.SUBMITTED, S.PENDING_MATCH, {SYSTEM}, "Open for Matching"),
    _rule(S.DEV_REQUESTED, S.AWAITING_CLIENT_APPROVAL, {SYSTEM}, "Ask Client for Approval"),
    _rule(S.ABANDONED_BY_DEV, S.PENDING_MATCH, {SYSTEM}, "Reopen for Matching"),

    # matching
    _rule(S.PENDING_MATCH, S.DEV_REQUESTED, {DEVELOPER}, "Request Assignment"),
    _rule(S.AWAITING_CLIENT_APPROVAL, S.APPROVED, {CLIENT}, "Approve Developer"),
    _rule(S.AWAITING_CLIENT_APPROVAL, S.PENDING_MATCH, {CLIENT}, "Decline Developer", "secondary", True),

    # requirements
    _rule(S.APPROVED, S.REQUIREMENTS_REVIEW, {DEVELOPER}, "Start Requirements Review"),
    _rule(S.APPROVED, S.NEED_MORE_INFO, {DEVELOPER}, "Request More Information", "secondary", True),
    _rule(S.REQUIREMENTS_REVIEW, S.IN_PROGRESS, {DEVELOPER}, "Start Development"),
    _rule(S.REQUIREMENTS_REVIEW, S.NEED_MORE_INFO, {DEVELOPER}, "Request More Information", "secondary", True),
    _rule(S.NEED_MORE_INFO, S.REQUIREMENTS_REVIEW, {DEVELOPER, CLIENT}, "Continue with Review"),
    _rule(S.NEED_MORE_INFO, S.IN_PROGRESS, {DEVELOPER}, "Start Development"),

    # active work and QA loop
    _rule(S.IN_PROGRESS, S.READY_FOR_QA, {DEVELOPER}, "Submit for Review"),
    _rule(S.IN_PROGRESS, S.REQUIREMENTS_REVIEW, {DEVELOPER}, "Back to Requirements", "outline"),
    _rule(S.IN_PROGRESS, S.NEED_MORE_INFO, {DEVELOPER}, "Request More Information", "secondary", True),
    _rule(S.READY_FOR_QA, S.QA_PASS, {CLIENT}, "Approve Work"),
    _rule(S.READY_FOR_QA, S.QA_FAIL, {CLIENT}, "Request Changes", "secondary", True),
    _rule(S.QA_FAIL, S.IN_PROGRESS, {DEVELOPER}, "Resume Development"),
    _rule(S.QA_FAIL, S.READY_FOR_QA, {DEVELOPER}, "Resubmit for Review"),

    # wrap-up
    _rule(S.QA_PASS, S.READY_FOR_FINAL_ACTION, {SYSTEM, DEVELOPER}, "Prepare Final Delivery"),
    _rule(S.QA_PASS, S.REOPENED, {CLIENT}, "Reopen", "outline", True),
    _rule(S.READY_FOR_FINAL_ACTION, S.RESOLVED, {CLIENT, DEVELOPER}, "Mark as Complete"),
    _rule(S.READY_FOR_FINAL_ACTION, S.REOPENED, {CLIENT}, "Reopen", "outline", True),
    _rule(S.REOPENED, S.IN_PROGRESS, {DEVELOPER}, "Resume Development"),
) + tuple(
    _rule(frm, S.ABANDONED_BY_DEV, {DEVELOPER}, "Abandon Request", "destructive", True)
    for frm in ABANDONABLE
)

CLIENT_CANCEL_LABEL = "Cancel Request"


def client_cancel_rule(frm: RequestStatus) -> TransitionRule:
    return _rule(frm, S.CANCELLED_BY_CLIENT, {CLIENT}, CLIENT_CANCEL_LABEL, "destructive", True)


def validate_table(rules: Iterable[TransitionRule]) -> None:
    """Raises ValueError when the table contradicts itself."""
    seen = set()
    for r in rules:
        key = (r.from_status, r.to_status)
        if key in seen:
            raise ValueError(f"duplicate rule {r.from_status} -> {r.to_status}")
        seen.add(key)
        if r.from_status in TERMINAL_STATUSES:
            raise ValueError(f"terminal status {r.from_status} has an outbound rule")
        if r.from_status == r.to_status:
            raise ValueError(f"self transition on {r.from_status}")
        if not r.roles:
            raise ValueError(f"rule {r.from_status} -> {r.to_status} has no roles")


def _index(rules: Iterable[TransitionRule]) -> Dict[Tuple[RequestStatus, Role], List[TransitionRule]]:
    idx: Dict[Tuple[RequestStatus, Role], List[TransitionRule]] = defaultdict(list)
    for r in rules:
        for role in r.roles:
            idx[(r.from_status, role)].append(r)
    return dict(idx)


validate_table(TRANSITION_RULES)
_RULES_BY_KEY = _index(TRANSITION_RULES)


def rules_for(status, role) -> List[TransitionRule]:
    """Rules available from ``status`` to ``role``, explicit ones first.

    Unknown statuses or roles give an empty list. For clients on a
    non-terminal status the universal cancel rule is appended.
    """
    st = parse_status(status)
    rl = parse_role(role)
    if st is None or rl is None or st in TERMINAL_STATUSES:
        return []
    rules = list(_RULES_BY_KEY.get((st, rl), ()))
    if rl == CLIENT and not any(r.to_status == S.CANCELLED_BY_CLIENT for r in rules):
        rules.append(client_cancel_rule(st))
    return rules


def reachable(status, role) -> List[RequestStatus]:
    return [r.to_status for r in rules_for(status, role)]


def find_rule(current, requested, role):
    for r in rules_for(current, role):
        if r.to_status == parse_status(requested):
            return r
    return None


def is_allowed(current, requested, role) -> bool:
    return find_rule(current, requested, role) is not None


def is_universal_cancel(current, requested, role) -> bool:
    st = parse_status(current)
    return (
        parse_role(role) == CLIENT
        and parse_status(requested) == S.CANCELLED_BY_CLIENT
        and st is not None
        and st not in TERMINAL_STATUSES
    )
