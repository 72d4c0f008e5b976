import logging
from datetime import datetime, timezone

import pytest

from conftest import CLIENT_ID
from helpflow.models.request import HistoryEntry
from helpflow.models.status import RequestStatus
from helpflow.repositories.memory import InMemoryRequestRepository
from helpflow.services.history import HistoryRecorder


class FailingRepository(InMemoryRequestRepository):
    async def append_history(self, entry):
        raise OSError("disk full")


def test_record_builds_entry_without_storage(repo, clock):
    recorder = HistoryRecorder(repo, clock=clock)

    entry = recorder.record("r1", "ready-for-qa", "qa_pass", CLIENT_ID, details={"comment": "looks good"})

    assert isinstance(entry, HistoryEntry)
    assert entry.previous_status == RequestStatus.READY_FOR_QA
    assert entry.new_status == RequestStatus.QA_PASS
    assert entry.change_type == "STATUS_CHANGE"
    assert entry.changed_at == clock.now
    assert entry.details == {"comment": "looks good"}
    assert repo.history == []


def test_record_uses_given_timestamp(repo):
    at = datetime(2023, 3, 1, tzinfo=timezone.utc)
    entry = HistoryRecorder(repo).record("r1", None, "submitted", CLIENT_ID, change_type="CREATED", changed_at=at)

    assert entry.changed_at == at
    assert entry.previous_status is None


def test_record_copies_details(repo):
    details = {"comment": "x"}
    entry = HistoryRecorder(repo).record("r1", "submitted", "pending_match", "system", details=details)
    details["comment"] = "changed"

    assert entry.details == {"comment": "x"}


@pytest.mark.asyncio
async def test_persist_appends(repo, clock):
    recorder = HistoryRecorder(repo, clock=clock)
    entry = recorder.record("r1", "submitted", "pending_match", "system")

    assert await recorder.persist(entry) is True
    assert await repo.list_history("r1") == [entry]


@pytest.mark.asyncio
async def test_persist_failure_is_logged_not_raised(clock, caplog):
    recorder = HistoryRecorder(FailingRepository(), clock=clock)
    entry = recorder.record("r1", "submitted", "pending_match", "system")

    with caplog.at_level(logging.ERROR, logger="helpflow.services.history"):
        assert await recorder.persist(entry) is False

    assert "history write failed for request r1" in caplog.text


@pytest.mark.asyncio
async def test_entries_with_equal_timestamps_keep_insertion_order(repo):
    at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    recorder = HistoryRecorder(repo)
    first = await recorder.record_and_persist("r1", "submitted", "pending_match", "system", changed_at=at)
    second = await recorder.record_and_persist("r1", "pending_match", "dev_requested", "dev-1", changed_at=at)
    await recorder.record_and_persist("r2", "submitted", "pending_match", "system", changed_at=at)

    assert [e.id for e in await repo.list_history("r1")] == [first.id, second.id]
