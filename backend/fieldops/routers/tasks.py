"""Task endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_actor
from ..database import get_db
from ..repositories.station_registry import SqlStationRegistry
from ..repositories.task_store import SqlTaskStore
from ..schemas import TaskCreate, TaskHistoryEntry, TaskPatchRequest, TaskResponse
from ..services.event_builder import Actor
from ..services.task_input import build_task_patch
from ..use_cases.task_mutation import (
    create_task_use_case,
    get_task_use_case,
    task_history_use_case,
    update_task_use_case,
)

router = APIRouter(prefix="/orgs/{org}/projects/{project}/tasks", tags=["tasks"])


def get_task_store(db: Session = Depends(get_db)) -> SqlTaskStore:
    return SqlTaskStore(db)


def get_station_registry(db: Session = Depends(get_db)) -> SqlStationRegistry:
    return SqlStationRegistry(db)


@router.post("", response_model=TaskResponse, status_code=201)
def create_task(
    org: str,
    project: str,
    data: TaskCreate,
    actor: Actor = Depends(get_current_actor),
    store: SqlTaskStore = Depends(get_task_store),
):
    """Create new task."""
    return create_task_use_case(
        store=store,
        org_ref=org,
        project_ref=project,
        data=data,
        actor=actor,
    )


@router.get("/{task_ref}", response_model=TaskResponse)
def get_task(
    org: str,
    project: str,
    task_ref: str,
    actor: Actor = Depends(get_current_actor),
    store: SqlTaskStore = Depends(get_task_store),
):
    """Get task by id or short code."""
    return get_task_use_case(store=store, org_ref=org, project_ref=project, task_ref=task_ref)


@router.get("/{task_ref}/history", response_model=list[TaskHistoryEntry])
def get_task_history(
    org: str,
    project: str,
    task_ref: str,
    actor: Actor = Depends(get_current_actor),
    store: SqlTaskStore = Depends(get_task_store),
):
    """Reconciled event timeline, newest first."""
    return task_history_use_case(store=store, org_ref=org, project_ref=project, task_ref=task_ref)


@router.patch("/{task_ref}", response_model=TaskResponse)
@router.put("/{task_ref}", response_model=TaskResponse)
def update_task(
    org: str,
    project: str,
    task_ref: str,
    data: TaskPatchRequest,
    actor: Actor = Depends(get_current_actor),
    store: SqlTaskStore = Depends(get_task_store),
    registry: SqlStationRegistry = Depends(get_station_registry),
):
    """Partially update task."""
    return update_task_use_case(
        store=store,
        registry=registry,
        org_ref=org,
        project_ref=project,
        task_ref=task_ref,
        patch=build_task_patch(data),
        actor=actor,
    )
