from datetime import datetime, timezone

from fieldops.schemas import TaskPatchRequest
from fieldops.services.task_input import build_task_patch, parse_due_date


def _patch(**body):
    return build_task_patch(TaskPatchRequest.model_validate(body))


def test_only_sent_fields_are_kept() -> None:
    assert _patch(priority="High") == {"priority": "high"}
    assert _patch() == {}


def test_unknown_fields_are_ignored() -> None:
    assert _patch(org_id="other-org", events=[], task_code="HACK1") == {}


def test_garbage_priority_date_and_coordinates_are_dropped() -> None:
    assert _patch(priority="whatever", due_date="soon", bs_latitude="north") == {}


def test_status_synonyms_are_normalized() -> None:
    assert _patch(status="in progress") == {"status": "At work"}
    assert _patch(status="  ") == {}


def test_due_date_is_parsed_as_aware_datetime() -> None:
    assert _patch(due_date="2026-04-01T10:00:00Z") == {
        "due_date": datetime(2026, 4, 1, 10, 0, tzinfo=timezone.utc)
    }
    assert parse_due_date("2026-04-01") == datetime(2026, 4, 1, tzinfo=timezone.utc)
    assert parse_due_date(None) is None


def test_unparseable_total_cost_clears_it() -> None:
    assert _patch(total_cost="1 500") == {"total_cost": None}
    assert _patch(total_cost="1500.50") == {"total_cost": 1500.5}


def test_description_can_be_cleared_but_required_text_cannot_be_nulled() -> None:
    assert _patch(task_description=None, task_name=None) == {"task_description": None}


def test_executor_fields_follow_the_id() -> None:
    assert _patch(executor_id=" e-42 ", executor_name="Ann") == {
        "executor_id": "e-42",
        "executor_name": "Ann",
    }
    assert _patch(executor_id="", executor_name="Ann") == {"executor_id": None}
    assert _patch(executor_name="Ann") == {}


def test_location_list_is_passed_through() -> None:
    points = [{"name": "IR0001", "coordinates": "52.27 104.3"}]

    assert _patch(bs_location=points) == {"bs_location": points}
    assert _patch(bs_location=None) == {}
