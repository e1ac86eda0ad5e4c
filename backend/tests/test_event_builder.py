from datetime import datetime, timezone

from fieldops.services.event_builder import (
    ACTION_ASSIGNED,
    ACTION_CREATED,
    ACTION_UPDATED,
    Actor,
    TaskEventRecord,
    build_created_event,
    build_task_events,
)

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
ACTOR = Actor(id="u-1", name="Dispatcher")


def test_created_event_carries_identity_fields() -> None:
    event = build_created_event(
        task_fields={
            "task_code": "K7QX2",
            "task_name": "Replace RRU",
            "bs_number": "IR0001",
            "status": "To do",
            "priority": "medium",
            "total_cost": 10.0,
        },
        actor=ACTOR,
        now=NOW,
    )

    assert event.action == ACTION_CREATED
    assert event.author_id == "u-1"
    assert event.details == {
        "task_code": "K7QX2",
        "task_name": "Replace RRU",
        "bs_number": "IR0001",
        "status": "To do",
        "priority": "medium",
    }


def test_no_changes_and_no_side_events_produce_nothing() -> None:
    assert build_task_events(change_set={}, side_events=[], actor=ACTOR, now=NOW) == []


def test_updated_event_comes_first_and_all_events_share_timestamp() -> None:
    side_event = TaskEventRecord(
        action=ACTION_ASSIGNED,
        author="Dispatcher",
        author_id="u-1",
        date=datetime(2020, 1, 1, tzinfo=timezone.utc),
        details={"executor_id": "e-42"},
    )

    events = build_task_events(
        change_set={
            "status": {"from": "To do", "to": "Assigned"},
            "due_date": {"from": None, "to": datetime(2026, 4, 1, tzinfo=timezone.utc)},
        },
        side_events=[side_event],
        actor=ACTOR,
        now=NOW,
    )

    assert [event.action for event in events] == [ACTION_UPDATED, ACTION_ASSIGNED]
    assert {event.date for event in events} == {NOW}
    assert events[0].details["due_date"] == {"from": None, "to": "2026-04-01T00:00:00+00:00"}
