"""Task create/read/update use-cases used by task router endpoints."""
from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ..config import settings
from ..domain_errors import DomainError, not_found
from ..repositories.task_store import TaskScope, TaskStore, TaskWrite, parse_uuid
from ..schemas import TaskCreate
from ..services.event_builder import Actor, build_created_event, build_task_events
from ..services.event_log import DisplayEvent, reconcile_events
from ..services.geo_sync import (
    StationRegistry,
    build_sync_request,
    derive_coordinates,
    resolve_station_location,
    sync_station_best_effort,
)
from ..services.status_rules import (
    DEFAULT_PRIORITY,
    STATUS_ASSIGNED,
    STATUS_TODO,
    apply_executor_rules,
    normalize_priority,
    normalize_status,
)
from ..services.task_diff import diff_task_fields, split_change_set, task_snapshot
from ..services.task_input import parse_due_date
from ..services.value_normalizer import normalize_locations, parse_number, values_equal

logger = logging.getLogger(__name__)

TASK_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def generate_task_code(length: int | None = None) -> str:
    size = length or settings.TASK_CODE_LENGTH
    return "".join(secrets.choice(TASK_CODE_ALPHABET) for _ in range(size))


def _get_task_or_404(*, store: TaskStore, scope: TaskScope, task_ref: str) -> Any:
    """Primary id first, then the short code inside the same project."""
    task = None
    task_id = parse_uuid(task_ref)
    if task_id is not None:
        task = store.find_task(scope, task_id=task_id)
    if task is None:
        task = store.find_task(scope, task_code=task_ref.strip().upper())
    if task is None:
        raise not_found("TASK_NOT_FOUND", "Task not found")
    return task


def _unique_task_code(*, store: TaskStore, scope: TaskScope) -> str:
    for _ in range(settings.TASK_CODE_MAX_ATTEMPTS):
        code = generate_task_code()
        if not store.task_code_exists(scope, code):
            return code
    raise DomainError(
        code="TASK_CODE_EXHAUSTED",
        http_status=500,
        message="Could not allocate a task code",
    )


def _apply_station_rules(
    *,
    registry: StationRegistry,
    scope: TaskScope,
    current: Mapping[str, Any],
    proposed: dict[str, Any],
) -> None:
    """Resolve the location list for a changed station and derive lat/lon."""
    client_locations = proposed.get("bs_location")
    if not isinstance(client_locations, list):
        client_locations = None

    new_number = proposed.get("bs_number")
    bs_number_changed = (
        isinstance(new_number, str)
        and bool(new_number.strip())
        and new_number.strip() != (current.get("bs_number") or "")
    )
    if bs_number_changed:
        proposed["bs_location"] = resolve_station_location(
            registry,
            bs_number=new_number.strip(),
            operator_code=scope.operator_code,
            region_code=scope.region_code,
            client_locations=client_locations,
        )

    location_changed = "bs_location" in proposed and not values_equal(
        "locations", current.get("bs_location"), proposed["bs_location"]
    )
    if not (bs_number_changed or location_changed):
        return

    locations = normalize_locations(proposed.get("bs_location", current.get("bs_location")))
    lat, lon = derive_coordinates(locations)
    if lat is not None and lon is not None:
        proposed["bs_latitude"] = lat
        proposed["bs_longitude"] = lon
    elif not locations:
        proposed.setdefault("bs_latitude", None)
        proposed.setdefault("bs_longitude", None)


def get_task_use_case(*, store: TaskStore, org_ref: str, project_ref: str, task_ref: str) -> Any:
    """Load a task inside its org/project scope."""
    scope = store.resolve_scope(org_ref, project_ref)
    return _get_task_or_404(store=store, scope=scope, task_ref=task_ref)


def task_history_use_case(
    *,
    store: TaskStore,
    org_ref: str,
    project_ref: str,
    task_ref: str,
) -> list[DisplayEvent]:
    """Reconciled, newest-first timeline of a task."""
    task = get_task_use_case(store=store, org_ref=org_ref, project_ref=project_ref, task_ref=task_ref)
    return reconcile_events(task.events or [])


def create_task_use_case(
    *,
    store: TaskStore,
    org_ref: str,
    project_ref: str,
    data: TaskCreate,
    actor: Actor,
    now: datetime | None = None,
) -> Any:
    """Create a task and seed its ``created`` event."""
    scope = store.resolve_scope(org_ref, project_ref)
    now = now or now_utc()

    required = {
        "task_name": data.task_name.strip(),
        "bs_number": data.bs_number.strip(),
        "bs_address": data.bs_address.strip(),
    }
    missing = sorted(name for name, value in required.items() if not value)
    if missing:
        raise DomainError(
            code="TASK_REQUIRED_FIELDS",
            http_status=400,
            message="task_name, bs_number and bs_address are required",
            details={"missing": missing},
        )

    task_code = (data.task_code or "").strip().upper()
    if task_code:
        if store.task_code_exists(scope, task_code):
            raise DomainError(
                code="TASK_CODE_TAKEN",
                http_status=409,
                message="Task code already exists in this project",
            )
    else:
        task_code = _unique_task_code(store=store, scope=scope)

    executor_id = (data.executor_id or "").strip() or None
    bs_location = normalize_locations(data.bs_location)
    lat, lon = derive_coordinates(bs_location)
    if lat is None or lon is None:
        lat, lon = parse_number(data.bs_latitude), parse_number(data.bs_longitude)

    fields: dict[str, Any] = {
        "task_code": task_code,
        **required,
        "task_description": (data.task_description or "").strip() or None,
        "status": normalize_status(data.status) or (STATUS_ASSIGNED if executor_id else STATUS_TODO),
        "priority": normalize_priority(data.priority) or DEFAULT_PRIORITY,
        "due_date": parse_due_date(data.due_date),
        "bs_location": bs_location,
        "bs_latitude": lat,
        "bs_longitude": lon,
        "total_cost": parse_number(data.total_cost),
        "executor_id": executor_id,
        "executor_name": ((data.executor_name or "").strip() or None) if executor_id else None,
        "executor_email": ((data.executor_email or "").strip() or None) if executor_id else None,
        "author_id": actor.id,
        "author_name": actor.name,
        "author_email": actor.email,
    }
    events = [build_created_event(task_fields=fields, actor=actor, now=now)]
    task = store.create_task(scope, fields, events)
    logger.info("task.created code=%s project=%s", task_code, scope.project_id)
    return task


def update_task_use_case(
    *,
    store: TaskStore,
    registry: StationRegistry,
    org_ref: str,
    project_ref: str,
    task_ref: str,
    patch: Mapping[str, Any],
    actor: Actor,
    now: datetime | None = None,
) -> Any:
    """Apply a sparse patch: rules, diff, audit events, write, geo-sync."""
    scope = store.resolve_scope(org_ref, project_ref)
    task = _get_task_or_404(store=store, scope=scope, task_ref=task_ref)
    now = now or now_utc()

    current = task_snapshot(task)
    # Executor rules must run before the diff so injected status is audited.
    ruled = apply_executor_rules(current=current, patch=patch, actor=actor, now=now)
    proposed = ruled.patch
    _apply_station_rules(registry=registry, scope=scope, current=current, proposed=proposed)

    change_set = diff_task_fields(current, proposed)
    events = build_task_events(
        change_set=change_set,
        side_events=ruled.side_events,
        actor=actor,
        now=now,
    )
    if not events:
        return task

    fields_to_set, fields_to_clear = split_change_set(change_set)
    updated = store.apply_write(
        task,
        TaskWrite(
            fields_to_set=fields_to_set,
            fields_to_clear=fields_to_clear,
            events_to_append=events,
        ),
    )
    logger.info(
        "task.updated code=%s changes=%s events=%d",
        updated.task_code,
        ",".join(sorted(change_set)),
        len(events),
    )

    if settings.GEO_SYNC_ENABLED and ("bs_number" in change_set or "bs_location" in change_set):
        sync_station_best_effort(
            registry,
            build_sync_request(
                bs_number=updated.bs_number,
                bs_address=updated.bs_address,
                lat=updated.bs_latitude,
                lon=updated.bs_longitude,
                region_code=scope.region_code,
                operator_code=scope.operator_code,
            ),
        )
    return updated
