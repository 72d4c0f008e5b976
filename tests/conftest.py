import os
from datetime import datetime, timedelta, timezone

import pytest

# Settings are read at import time; keep tests off MongoDB.
os.environ.setdefault("REPOSITORY_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret")

from helpflow.models.common import MatchStatus  # noqa: E402
from helpflow.models.request import Match, TicketRequest  # noqa: E402
from helpflow.repositories.memory import InMemoryRequestRepository  # noqa: E402
from helpflow.services.transition_engine import TransitionEngine  # noqa: E402

CLIENT_ID = "client-1"
DEV_ID = "dev-1"
OTHER_DEV_ID = "dev-2"


class FakeClock:
    """Advances one second per call so history order is deterministic."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repo():
    return InMemoryRequestRepository()


@pytest.fixture
def engine(repo, clock):
    return TransitionEngine(repo, clock=clock)


def seed_request(repo, status="submitted", developer_id=None, **fields) -> TicketRequest:
    req = TicketRequest(client_id=CLIENT_ID, status=status, developer_id=developer_id, title="Fix my build", **fields)
    repo.requests[req.id] = req
    return req


def seed_match(repo, request_id, developer_id=DEV_ID, status=MatchStatus.APPROVED) -> Match:
    m = Match(request_id=request_id, developer_id=developer_id, status=status)
    repo.matches[m.id] = m
    return m
