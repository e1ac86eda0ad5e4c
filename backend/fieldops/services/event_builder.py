"""Audit event construction for task mutations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, TypedDict, Union

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_ASSIGNED = "status_changed_assigned"


@dataclass(frozen=True)
class Actor:
    """Acting user as resolved by the identity provider."""

    id: str
    name: str
    email: str | None = None


# "to" is None (or missing) when the field was cleared.
FieldChange = TypedDict("FieldChange", {"from": Any, "to": Any}, total=False)

ChangeSet = dict[str, FieldChange]


class CreatedDetails(TypedDict):
    task_code: str
    task_name: str
    bs_number: str
    status: str | None
    priority: str | None


class AssignedDetails(TypedDict, total=False):
    task_code: str
    task_name: str
    bs_number: str
    executor_id: str
    executor_name: str | None
    executor_email: str
    status: FieldChange


EventDetails = Union[CreatedDetails, AssignedDetails, ChangeSet]


@dataclass(frozen=True)
class TaskEventRecord:
    action: str
    author: str
    author_id: str
    date: datetime
    details: EventDetails


def to_json_safe(value: Any) -> Any:
    """Make change-set values storable in a JSON column."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(item) for item in value]
    return value


def build_created_event(*, task_fields: Mapping[str, Any], actor: Actor, now: datetime) -> TaskEventRecord:
    details: CreatedDetails = {
        "task_code": task_fields.get("task_code"),
        "task_name": task_fields.get("task_name"),
        "bs_number": task_fields.get("bs_number"),
        "status": task_fields.get("status"),
        "priority": task_fields.get("priority"),
    }
    return TaskEventRecord(
        action=ACTION_CREATED,
        author=actor.name,
        author_id=actor.id,
        date=now,
        details=details,
    )


def build_assigned_event(
    *,
    current: Mapping[str, Any],
    executor_id: str,
    executor_name: str | None,
    executor_email: str | None,
    previous_status: str | None,
    effective_status: str | None,
    actor: Actor,
    now: datetime,
) -> TaskEventRecord:
    details: AssignedDetails = {
        "task_code": current.get("task_code"),
        "task_name": current.get("task_name"),
        "bs_number": current.get("bs_number"),
        "executor_id": executor_id,
        "executor_name": executor_name,
    }
    if executor_email:
        details["executor_email"] = executor_email
    if effective_status != previous_status:
        details["status"] = {"from": previous_status, "to": effective_status}
    return TaskEventRecord(
        action=ACTION_ASSIGNED,
        author=actor.name,
        author_id=actor.id,
        date=now,
        details=details,
    )


def build_task_events(
    *,
    change_set: ChangeSet,
    side_events: list[TaskEventRecord],
    actor: Actor,
    now: datetime,
) -> list[TaskEventRecord]:
    """Package a change-set and rule side-events as one logical transaction.

    Every returned event carries ``now``; nothing is returned when neither a
    change nor a side-event exists.
    """
    events: list[TaskEventRecord] = []
    if change_set:
        events.append(
            TaskEventRecord(
                action=ACTION_UPDATED,
                author=actor.name,
                author_id=actor.id,
                date=now,
                details=to_json_safe(change_set),
            )
        )
    for side_event in side_events:
        events.append(
            TaskEventRecord(
                action=side_event.action,
                author=side_event.author,
                author_id=side_event.author_id,
                date=now,
                details=to_json_safe(side_event.details),
            )
        )
    return events
