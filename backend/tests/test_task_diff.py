from datetime import datetime, timezone

from fieldops.services.task_diff import MUTABLE_FIELDS, diff_task_fields, split_change_set


def _current() -> dict:
    return {
        "task_name": "Replace RRU",
        "bs_number": "IR0001",
        "bs_address": "Irkutsk, Lenina 1",
        "task_description": "Sector 2 alarm",
        "status": "To do",
        "priority": "medium",
        "due_date": datetime(2026, 3, 1, tzinfo=timezone.utc),
        "bs_location": [{"name": "IR0001", "coordinates": "52.270889 104.3", "address": ""}],
        "bs_latitude": 52.270889,
        "bs_longitude": 104.3,
        "total_cost": 1500.0,
        "executor_id": None,
        "executor_name": None,
        "executor_email": None,
    }


def test_identical_patch_produces_empty_change_set() -> None:
    current = _current()
    assert diff_task_fields(current, dict(current)) == {}


def test_equivalent_representations_are_not_changes() -> None:
    proposed = {
        "task_name": "  Replace RRU ",
        "due_date": "2026-03-01T00:00:00Z",
        "bs_location": [{"name": "IR0001", "coordinates": "52.270889 104.3"}],
        "bs_latitude": "52.2708891234",
        "total_cost": 1500,
    }
    assert diff_task_fields(_current(), proposed) == {}


def test_absent_fields_are_never_compared() -> None:
    change_set = diff_task_fields(_current(), {"priority": "high"})
    assert change_set == {"priority": {"from": "medium", "to": "high"}}


def test_strings_are_trimmed_before_storage() -> None:
    change_set = diff_task_fields(_current(), {"task_name": "  Swap antenna  "})
    assert change_set["task_name"] == {"from": "Replace RRU", "to": "Swap antenna"}


def test_blank_optional_text_clears_the_field() -> None:
    change_set = diff_task_fields(_current(), {"task_description": "   "})
    assert change_set == {"task_description": {"from": "Sector 2 alarm", "to": None}}


def test_blank_required_text_is_ignored() -> None:
    assert diff_task_fields(_current(), {"task_name": "   ", "bs_number": ""}) == {}


def test_unknown_fields_are_ignored() -> None:
    assert diff_task_fields(_current(), {"org_id": "other", "events": []}) == {}
    assert "org_id" not in MUTABLE_FIELDS


def test_split_change_set_separates_set_and_clear() -> None:
    change_set = diff_task_fields(
        _current(),
        {"status": "Assigned", "task_description": "", "bs_location": None},
    )
    fields_to_set, fields_to_clear = split_change_set(change_set)

    assert fields_to_set == {"status": "Assigned", "bs_location": []}
    assert fields_to_clear == ["task_description"]
