import pytest

from helpflow.models.status import (
    NO_DESCRIPTION,
    TERMINAL_STATUSES,
    RequestStatus,
    description_of,
    is_terminal,
    label_of,
    normalize_status,
    parse_status,
    registry_entries,
)


def test_every_status_has_label_and_description():
    for st in RequestStatus:
        assert label_of(st)
        assert description_of(st) != NO_DESCRIPTION


def test_codes_use_underscores_only():
    for st in RequestStatus:
        assert "-" not in st.value and " " not in st.value
        assert st.value == st.value.lower()


@pytest.mark.parametrize("raw", ["in_progress", "in-progress", "In Progress", " IN-progress ", "in__progress"])
def test_separator_variants_normalize_to_the_same_code(raw):
    assert normalize_status(raw) == "in_progress"
    assert parse_status(raw) == RequestStatus.IN_PROGRESS


@pytest.mark.parametrize("legacy,canonical", [
    ("cancelled", RequestStatus.CANCELLED_BY_CLIENT),
    ("ready_for_client_qa", RequestStatus.READY_FOR_QA),
    ("qa-feedback", RequestStatus.QA_FAIL),
    ("complete", RequestStatus.RESOLVED),
    ("open", RequestStatus.PENDING_MATCH),
])
def test_legacy_vocabulary_maps_onto_registry(legacy, canonical):
    assert parse_status(legacy) == canonical


def test_unknown_status_is_title_cased_not_raised():
    assert parse_status("waiting_for_godot") is None
    assert label_of("waiting_for_godot") == "Waiting For Godot"
    assert label_of("some-odd status") == "Some Odd Status"


def test_unknown_description_is_generic():
    assert description_of("nope") == NO_DESCRIPTION
    assert description_of("") == NO_DESCRIPTION
    assert description_of(None) == NO_DESCRIPTION


def test_labels_are_stable():
    assert label_of("pending_match") == "Pending Match"
    assert label_of("ready_for_qa") == "Ready for QA"
    assert label_of("cancelled_by_client") == "Cancelled"
    assert "awaiting" in description_of("pending_match")
    assert "cancelled" in description_of("cancelled_by_client")


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {RequestStatus.RESOLVED, RequestStatus.CANCELLED_BY_CLIENT}
    assert is_terminal("Resolved")
    assert not is_terminal("abandoned_by_dev")


def test_registry_entries_cover_all_statuses():
    entries = registry_entries()
    assert [e.code for e in entries] == [st.value for st in RequestStatus]
    assert {e.code for e in entries if e.terminal} == {"resolved", "cancelled_by_client"}
