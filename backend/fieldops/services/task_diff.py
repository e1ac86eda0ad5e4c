"""Field-level diff of a sparse task patch against the stored record."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .event_builder import ChangeSet
from .value_normalizer import FieldKind, normalize_locations, values_equal

FIELD_KINDS: Mapping[str, FieldKind] = {
    "task_name": "text",
    "bs_number": "text",
    "bs_address": "text",
    "task_description": "text",
    "status": "text",
    "priority": "text",
    "due_date": "date",
    "bs_location": "locations",
    "bs_latitude": "number",
    "bs_longitude": "number",
    "total_cost": "number",
    "executor_id": "text",
    "executor_name": "text",
    "executor_email": "text",
}

MUTABLE_FIELDS: tuple[str, ...] = tuple(FIELD_KINDS)

REQUIRED_TEXT_FIELDS: frozenset[str] = frozenset({"task_name", "bs_number", "bs_address"})


_SKIP = object()


def _prepare(name: str, value: Any) -> Any:
    """Trim strings; an empty optional text clears the field, an empty required one is ignored."""
    if FIELD_KINDS[name] == "locations":
        return normalize_locations(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return _SKIP if name in REQUIRED_TEXT_FIELDS else None
    return value


def task_snapshot(task: Any) -> dict[str, Any]:
    """Read the allow-listed fields (plus identity bits used by events) off a task."""
    snapshot = {name: getattr(task, name, None) for name in MUTABLE_FIELDS}
    snapshot["task_code"] = getattr(task, "task_code", None)
    return snapshot


def diff_task_fields(current: Mapping[str, Any], proposed: Mapping[str, Any]) -> ChangeSet:
    """Compare every allow-listed field present in ``proposed`` with ``current``.

    Fields missing from ``proposed`` are never compared. The returned ``to``
    value is the normalized one and is what gets stored.
    """
    change_set: ChangeSet = {}
    for name in MUTABLE_FIELDS:
        if name not in proposed:
            continue
        value = _prepare(name, proposed[name])
        if value is _SKIP:
            continue
        stored = current.get(name)
        if values_equal(FIELD_KINDS[name], stored, value):
            continue
        change_set[name] = {"from": stored, "to": value}
    return change_set


def split_change_set(change_set: ChangeSet) -> tuple[dict[str, Any], list[str]]:
    """Compile a change-set into (fields to set, fields to clear)."""
    fields_to_set: dict[str, Any] = {}
    fields_to_clear: list[str] = []
    for name, change in change_set.items():
        value = change.get("to")
        if value is None:
            fields_to_clear.append(name)
        else:
            fields_to_set[name] = value
    return fields_to_set, fields_to_clear
