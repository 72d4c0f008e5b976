# helpflow/models/request.py
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpflow.models.common import ChangeType, MatchStatus
from helpflow.models.status import INITIAL_STATUS, RequestStatus, parse_status


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _coerce_status(v):
    if v is None:
        return v
    st = parse_status(v)
    if st is None:
        raise ValueError(f"unknown request status: {v!r}")
    return st


class TicketRequest(BaseModel):
    """Snapshot of a help request as stored. Changed only through the repository."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    status: RequestStatus = INITIAL_STATUS
    client_id: str
    developer_id: Optional[str] = None
    title: str = ""
    description: str = ""
    technical_area: List[str] = Field(default_factory=list)
    urgency: Optional[str] = None
    budget_range: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    qa_start_time: Optional[datetime] = None
    client_review_start_time: Optional[datetime] = None
    client_review_complete_time: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    reopen_count: int = 0

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status_code(cls, v):
        return _coerce_status(v)


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    request_id: str
    change_type: ChangeType = "STATUS_CHANGE"
    previous_status: Optional[RequestStatus] = None
    new_status: RequestStatus
    changed_by: str
    changed_at: datetime = Field(default_factory=utcnow)
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("previous_status", "new_status", mode="before")
    @classmethod
    def normalize_status_codes(cls, v):
        return _coerce_status(v)


class Match(BaseModel):
    """A developer's application to a request."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    request_id: str
    developer_id: str
    status: MatchStatus = MatchStatus.PENDING
    proposed_message: Optional[str] = None
    proposed_duration: Optional[float] = None
    proposed_rate: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class RequestCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    technical_area: List[str] = Field(default_factory=list)
    urgency: Optional[str] = None
    budget_range: Optional[str] = None


class TransitionPayload(BaseModel):
    to_status: str
    comment: Optional[str] = None


class ApplicationPayload(BaseModel):
    proposed_message: Optional[str] = None
    proposed_duration: Optional[float] = Field(default=None, gt=0)
    proposed_rate: Optional[float] = Field(default=None, ge=0)

    @field_validator("proposed_rate")
    @classmethod
    def round_rate(cls, v):
        return round(v, 2) if v is not None else v


class DecisionPayload(BaseModel):
    status: MatchStatus

    @field_validator("status")
    @classmethod
    def require_decision(cls, v):
        if v == MatchStatus.PENDING:
            raise ValueError("a decision must approve or reject")
        return v
