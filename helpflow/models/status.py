# helpflow/models/status.py
"""Status registry: the only place request status codes are spelled out.

Every status has a stable underscore code, a label and a one-sentence
description. Raw strings coming from storage, HTTP payloads or older
clients go through ``normalize_status``/``parse_status`` before anything
compares them.
"""
import re
from enum import Enum
from typing import Dict, List, NamedTuple, Optional


class RequestStatus(str, Enum):
    SUBMITTED = "submitted"
    PENDING_MATCH = "pending_match"
    DEV_REQUESTED = "dev_requested"
    AWAITING_CLIENT_APPROVAL = "awaiting_client_approval"
    APPROVED = "approved"
    REQUIREMENTS_REVIEW = "requirements_review"
    NEED_MORE_INFO = "need_more_info"
    IN_PROGRESS = "in_progress"
    READY_FOR_QA = "ready_for_qa"
    QA_FAIL = "qa_fail"
    QA_PASS = "qa_pass"
    READY_FOR_FINAL_ACTION = "ready_for_final_action"
    RESOLVED = "resolved"
    REOPENED = "reopened"
    CANCELLED_BY_CLIENT = "cancelled_by_client"
    ABANDONED_BY_DEV = "abandoned_by_dev"

    def __str__(self) -> str:
        return self.value


INITIAL_STATUS = RequestStatus.SUBMITTED

TERMINAL_STATUSES = frozenset({RequestStatus.RESOLVED, RequestStatus.CANCELLED_BY_CLIENT})

_LABELS: Dict[RequestStatus, str] = {
    RequestStatus.SUBMITTED: "Submitted",
    RequestStatus.PENDING_MATCH: "Pending Match",
    RequestStatus.DEV_REQUESTED: "Developer Requested",
    RequestStatus.AWAITING_CLIENT_APPROVAL: "Awaiting Client Approval",
    RequestStatus.APPROVED: "Approved",
    RequestStatus.REQUIREMENTS_REVIEW: "Requirements Review",
    RequestStatus.NEED_MORE_INFO: "Need More Info",
    RequestStatus.IN_PROGRESS: "In Progress",
    RequestStatus.READY_FOR_QA: "Ready for QA",
    RequestStatus.QA_FAIL: "QA Failed",
    RequestStatus.QA_PASS: "QA Passed",
    RequestStatus.READY_FOR_FINAL_ACTION: "Ready for Final Action",
    RequestStatus.RESOLVED: "Resolved",
    RequestStatus.REOPENED: "Reopened",
    RequestStatus.CANCELLED_BY_CLIENT: "Cancelled",
    RequestStatus.ABANDONED_BY_DEV: "Abandoned by Developer",
}

_DESCRIPTIONS: Dict[RequestStatus, str] = {
    RequestStatus.SUBMITTED: "Request has been submitted but not yet processed.",
    RequestStatus.PENDING_MATCH: "Request is awaiting a developer match.",
    RequestStatus.DEV_REQUESTED: "A developer has requested to be assigned.",
    RequestStatus.AWAITING_CLIENT_APPROVAL: "Awaiting client approval for the developer assignment.",
    RequestStatus.APPROVED: "Developer has been approved and can start work.",
    RequestStatus.REQUIREMENTS_REVIEW: "Developer is reviewing requirements before starting work.",
    RequestStatus.NEED_MORE_INFO: "Developer needs more information from the client to proceed.",
    RequestStatus.IN_PROGRESS: "Developer is actively working on this request.",
    RequestStatus.READY_FOR_QA: "Developer has completed work and it is ready for client review.",
    RequestStatus.QA_FAIL: "Client has reviewed the work and found issues that need fixing.",
    RequestStatus.QA_PASS: "Client has confirmed the work meets requirements.",
    RequestStatus.READY_FOR_FINAL_ACTION: "Work is accepted and waiting for the final sign-off.",
    RequestStatus.RESOLVED: "Request has been completed and resolved successfully.",
    RequestStatus.REOPENED: "Client reopened accepted work and it needs another pass.",
    RequestStatus.CANCELLED_BY_CLIENT: "Request was cancelled by the client.",
    RequestStatus.ABANDONED_BY_DEV: "The assigned developer stepped away and the request needs a new match.",
}

NO_DESCRIPTION = "No description available"

# Spellings produced by the older status vocabularies, keyed by normalized form
STATUS_SYNONYMS: Dict[str, RequestStatus] = {
    "cancelled": RequestStatus.CANCELLED_BY_CLIENT,
    "canceled": RequestStatus.CANCELLED_BY_CLIENT,
    "cancelled_by_user": RequestStatus.CANCELLED_BY_CLIENT,
    "ready_for_client_qa": RequestStatus.READY_FOR_QA,
    "open": RequestStatus.PENDING_MATCH,
    "qa_feedback": RequestStatus.QA_FAIL,
    "complete": RequestStatus.RESOLVED,
    "completed": RequestStatus.RESOLVED,
    "needs_info": RequestStatus.NEED_MORE_INFO,
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_status(value) -> str:
    """'In-Progress ', 'in progress' and 'in_progress' all become 'in_progress'."""
    if isinstance(value, Enum):
        value = value.value
    s = _SEPARATORS.sub("_", str(value or "").strip().lower())
    return s.strip("_")


def parse_status(value) -> Optional[RequestStatus]:
    """Canonical status for ``value`` or None when the registry does not know it."""
    if isinstance(value, RequestStatus):
        return value
    code = normalize_status(value)
    if not code:
        return None
    try:
        return RequestStatus(code)
    except ValueError:
        return STATUS_SYNONYMS.get(code)


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def label_of(status) -> str:
    st = parse_status(status)
    if st is not None:
        return _LABELS[st]
    code = normalize_status(status)
    return " ".join(w.capitalize() for w in code.split("_") if w) or "Unknown"


def description_of(status) -> str:
    st = parse_status(status)
    if st is None:
        return NO_DESCRIPTION
    return _DESCRIPTIONS.get(st, NO_DESCRIPTION)


class StatusEntry(NamedTuple):
    code: str
    label: str
    description: str
    terminal: bool


def registry_entries() -> List[StatusEntry]:
    return [
        StatusEntry(st.value, _LABELS[st], _DESCRIPTIONS[st], st in TERMINAL_STATUSES)
        for st in RequestStatus
    ]
