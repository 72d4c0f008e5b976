# helpflow/models/common.py
from enum import Enum
from typing import Literal, Optional


class Role(str, Enum):
    CLIENT = "client"
    DEVELOPER = "developer"
    SYSTEM = "system"

    def __str__(self) -> str:
        return self.value


class MatchStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


ChangeType = Literal["STATUS_CHANGE", "CREATED"]
ButtonVariant = Literal["default", "secondary", "destructive", "outline"]


def parse_role(value) -> Optional[Role]:
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value or "").strip().lower())
    except ValueError:
        return None
