"""Task status vocabulary and the executor assignment state machine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from .event_builder import Actor, TaskEventRecord, build_assigned_event

STATUS_TODO = "To do"
STATUS_ASSIGNED = "Assigned"

STATUSES: tuple[str, ...] = (
    STATUS_TODO,
    STATUS_ASSIGNED,
    "At work",
    "Done",
    "Pending",
    "Issues",
    "Fixed",
    "Agreed",
)

_STATUS_SYNONYMS: Mapping[str, str] = MappingProxyType(
    {
        "TO DO": STATUS_TODO,
        "TODO": STATUS_TODO,
        "TO-DO": STATUS_TODO,
        "ASSIGNED": STATUS_ASSIGNED,
        "IN PROGRESS": "At work",
        "IN-PROGRESS": "At work",
        "AT WORK": "At work",
        "DONE": "Done",
        "PENDING": "Pending",
        "ISSUES": "Issues",
        "FIXED": "Fixed",
        "AGREED": "Agreed",
    }
)

PRIORITIES: frozenset[str] = frozenset({"urgent", "high", "medium", "low"})
DEFAULT_PRIORITY = "medium"

EXECUTOR_FIELDS: tuple[str, str, str] = ("executor_id", "executor_name", "executor_email")


def normalize_status(value: str | None) -> str | None:
    """Map display labels from any client to the canonical status.

    Unknown labels pass through unchanged; empty input means "not supplied".
    """
    if not value or not value.strip():
        return None
    return _STATUS_SYNONYMS.get(value.strip().upper(), value)


def normalize_priority(value: str | None) -> str | None:
    if not value:
        return None
    candidate = str(value).strip().lower()
    return candidate if candidate in PRIORITIES else None


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _clean_text(value: Any) -> str | None:
    """Trim free text the way the diff stores it; blank means cleared."""
    if value is None:
        return None
    return str(value).strip() or None


@dataclass
class ExecutorRuleResult:
    patch: dict[str, Any]
    side_events: list[TaskEventRecord] = field(default_factory=list)


def apply_executor_rules(
    *,
    current: Mapping[str, Any],
    patch: Mapping[str, Any],
    actor: Actor,
    now: datetime,
) -> ExecutorRuleResult:
    """Inject the implicit status change and executor side-event into a patch.

    Must run before diffing so the injected status is audited like an
    explicit one. An explicit status in the patch is never overridden.
    """
    result = ExecutorRuleResult(patch=dict(patch))
    if "executor_id" not in patch:
        return result

    proposed_id = patch.get("executor_id")
    current_id = current.get("executor_id")
    current_status = current.get("status")
    status_explicit = "status" in patch

    if _has_value(proposed_id):
        proposed_id = str(proposed_id).strip()
        result.patch["executor_id"] = proposed_id
        if proposed_id != current_id:
            # Name/email of a previous executor must not survive a new id.
            result.patch.setdefault("executor_name", None)
            result.patch.setdefault("executor_email", None)
        for name in ("executor_name", "executor_email"):
            if name in result.patch:
                result.patch[name] = _clean_text(result.patch[name])

        if _has_value(current_id):
            return result

        if not status_explicit and (not current_status or current_status == STATUS_TODO):
            result.patch["status"] = STATUS_ASSIGNED

        effective_status = result.patch.get("status", current_status)
        result.side_events.append(
            build_assigned_event(
                current=current,
                executor_id=proposed_id,
                executor_name=result.patch.get("executor_name"),
                executor_email=result.patch.get("executor_email"),
                previous_status=current_status,
                effective_status=effective_status,
                actor=actor,
                now=now,
            )
        )
        return result

    for name in EXECUTOR_FIELDS:
        result.patch[name] = None
    if _has_value(current_id) and not status_explicit and current_status == STATUS_ASSIGNED:
        result.patch["status"] = STATUS_TODO
    return result
