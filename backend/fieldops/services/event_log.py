"""Read-side reconciliation of the task event log into a display timeline."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .event_builder import ACTION_ASSIGNED, ACTION_CREATED, ACTION_UPDATED
from .status_rules import EXECUTOR_FIELDS
from .value_normalizer import to_epoch_ms

TITLE_CREATED = "task created"
TITLE_ASSIGNED = "assigned to executor"
TITLE_EXECUTOR_REMOVED = "executor unassigned"
TITLE_UPDATED = "task updated"


@dataclass(frozen=True)
class DisplayEvent:
    action: str
    title: str
    author: str
    author_id: str
    date: datetime | str
    details: dict[str, Any]


def _is_change(value: Any) -> bool:
    return isinstance(value, Mapping) and ("from" in value or "to" in value)


def _is_removal(value: Any) -> bool:
    if not isinstance(value, Mapping):
        return False
    if "to" in value and value["to"] is None:
        return "from" in value and value["from"] is not None
    return "from" in value and "to" not in value


def is_executor_removed(action: str, details: Mapping[str, Any] | None) -> bool:
    """An ``updated`` event whose executor fields went from a value to nothing."""
    if action != ACTION_UPDATED or not details:
        return False
    return any(_is_removal(details.get(name)) for name in EXECUTOR_FIELDS)


def event_title(action: str, details: Mapping[str, Any] | None = None) -> str:
    if action == ACTION_CREATED:
        return TITLE_CREATED
    if action == ACTION_ASSIGNED:
        return TITLE_ASSIGNED
    if action == ACTION_UPDATED:
        if is_executor_removed(action, details):
            return TITLE_EXECUTOR_REMOVED
        return TITLE_UPDATED
    return action


def _timestamp(event: Any) -> int | None:
    return to_epoch_ms(event.date)


def _sort_newest_first(events: list[Any]) -> list[Any]:
    indexed = list(enumerate(events))
    indexed.sort(key=lambda pair: (-(_timestamp(pair[1]) or 0), pair[0]))
    return [event for _, event in indexed]


def _merge_assignment(assigned: Mapping[str, Any], updated: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(assigned)
    status = updated.get("status")
    if _is_change(status):
        merged["status"] = dict(status)
    email = updated.get("executor_email")
    if email and not merged.get("executor_email"):
        merged["executor_email"] = email.get("to") if _is_change(email) else email
        if merged["executor_email"] is None:
            del merged["executor_email"]
    return merged


def _display(event: Any, details: Mapping[str, Any]) -> DisplayEvent:
    return DisplayEvent(
        action=event.action,
        title=event_title(event.action, details),
        author=event.author,
        author_id=event.author_id,
        date=event.date,
        details=dict(details),
    )


def reconcile_events(events: Iterable[Any]) -> list[DisplayEvent]:
    """Turn the stored event list into the timeline shown to users.

    An assignment event and the ``updated`` event written with it (same
    timestamp) collapse into one entry carrying the status change. Accepts
    ORM rows, event records or its own output.
    """
    ordered = _sort_newest_first(list(events))

    assignment_times = {
        _timestamp(event) for event in ordered if event.action == ACTION_ASSIGNED
    }

    result: list[DisplayEvent] = []
    for event in ordered:
        details = event.details or {}
        stamp = _timestamp(event)

        if event.action == ACTION_ASSIGNED:
            pair = next(
                (
                    other
                    for other in ordered
                    if other.action == ACTION_UPDATED and _timestamp(other) == stamp and other.details
                ),
                None,
            )
            if pair is not None:
                details = _merge_assignment(details, pair.details)
            result.append(_display(event, details))
            continue

        if event.action == ACTION_UPDATED and stamp in assignment_times:
            continue

        result.append(_display(event, details))
    return result
