"""Lenient normalization of free-form task input into a sparse patch."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..schemas import TaskPatchRequest
from .status_rules import normalize_priority, normalize_status
from .value_normalizer import parse_number

_TEXT_FIELDS = ("task_name", "bs_number", "bs_address")


def parse_due_date(value: Any) -> datetime | None:
    """ISO date/datetime string to an aware datetime; garbage gives None."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def build_task_patch(request: TaskPatchRequest) -> dict[str, Any]:
    """Keep only the fields the client actually sent, normalized.

    Unknown priorities, unparseable numbers and dates are dropped rather
    than rejected. An explicit but unparseable ``total_cost`` clears it.
    """
    sent = request.model_fields_set
    patch: dict[str, Any] = {}

    for name in _TEXT_FIELDS:
        value = getattr(request, name)
        if name in sent and value is not None:
            patch[name] = value

    if "task_description" in sent:
        patch["task_description"] = request.task_description

    status = normalize_status(request.status)
    if status:
        patch["status"] = status

    priority = normalize_priority(request.priority)
    if priority:
        patch["priority"] = priority

    due_date = parse_due_date(request.due_date)
    if due_date is not None:
        patch["due_date"] = due_date

    for name in ("bs_latitude", "bs_longitude"):
        number = parse_number(getattr(request, name))
        if number is not None:
            patch[name] = number

    if "total_cost" in sent:
        patch["total_cost"] = parse_number(request.total_cost)

    if "bs_location" in sent and request.bs_location is not None:
        patch["bs_location"] = request.bs_location

    if "executor_id" in sent:
        executor_id = (request.executor_id or "").strip()
        if executor_id:
            patch["executor_id"] = executor_id
            if "executor_name" in sent:
                patch["executor_name"] = request.executor_name
            if "executor_email" in sent:
                patch["executor_email"] = request.executor_email
        else:
            patch["executor_id"] = None

    return patch
