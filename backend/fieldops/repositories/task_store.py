"""Task storage interface and its SQLAlchemy implementation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import Organization, Project, Task, TaskEvent
from ..services.event_builder import TaskEventRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskScope:
    org_id: UUID
    project_id: UUID
    operator_code: str | None = None
    region_code: str | None = None


@dataclass
class TaskWrite:
    """One atomic write: set fields, clear fields, append events."""

    fields_to_set: dict[str, Any] = field(default_factory=dict)
    fields_to_clear: list[str] = field(default_factory=list)
    events_to_append: list[TaskEventRecord] = field(default_factory=list)


class TaskStore(Protocol):
    def resolve_scope(self, org_ref: str, project_ref: str) -> TaskScope:
        ...

    def find_task(self, scope: TaskScope, *, task_id: UUID | None = None, task_code: str | None = None) -> Any:
        ...

    def task_code_exists(self, scope: TaskScope, task_code: str) -> bool:
        ...

    def create_task(self, scope: TaskScope, fields: dict[str, Any], events: list[TaskEventRecord]) -> Any:
        ...

    def apply_write(self, task: Any, write: TaskWrite) -> Any:
        ...


def parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _event_row(task_id: UUID, position: int, record: TaskEventRecord) -> TaskEvent:
    return TaskEvent(
        task_id=task_id,
        position=position,
        action=record.action,
        author=record.author,
        author_id=record.author_id,
        date=record.date,
        details=record.details,
    )


class SqlTaskStore:
    """Compiles task writes down to SQLAlchemy unit-of-work operations."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve_scope(self, org_ref: str, project_ref: str) -> TaskScope:
        org = self.db.query(Organization).filter(
            Organization.slug == org_ref.strip().lower(),
        ).first()
        if not org:
            raise DomainError(code="ORG_NOT_FOUND", http_status=404, message="Org not found")

        project_query = self.db.query(Project).filter(Project.org_id == org.id)
        project_id = parse_uuid(project_ref)
        if project_id is not None:
            project = project_query.filter(Project.id == project_id).first()
        else:
            project = project_query.filter(Project.key == project_ref.strip().upper()).first()
        if not project:
            raise DomainError(code="PROJECT_NOT_FOUND", http_status=404, message="Project not found")

        return TaskScope(
            org_id=org.id,
            project_id=project.id,
            operator_code=project.operator_code,
            region_code=project.region_code,
        )

    def _scoped(self, scope: TaskScope):
        return self.db.query(Task).filter(
            Task.org_id == scope.org_id,
            Task.project_id == scope.project_id,
        )

    def find_task(self, scope: TaskScope, *, task_id: UUID | None = None, task_code: str | None = None) -> Task | None:
        if task_id is not None:
            return self._scoped(scope).filter(Task.id == task_id).first()
        if task_code:
            return self._scoped(scope).filter(Task.task_code == task_code).first()
        return None

    def task_code_exists(self, scope: TaskScope, task_code: str) -> bool:
        return self._scoped(scope).filter(Task.task_code == task_code).first() is not None

    def create_task(self, scope: TaskScope, fields: dict[str, Any], events: list[TaskEventRecord]) -> Task:
        task = Task(org_id=scope.org_id, project_id=scope.project_id, **fields)
        try:
            self.db.add(task)
            self.db.flush()
            for position, record in enumerate(events):
                self.db.add(_event_row(task.id, position, record))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to create task code=%s", fields.get("task_code"))
            raise DomainError(code="TASK_WRITE_FAILED", http_status=500, message="Failed to save task")
        self.db.refresh(task)
        return task

    def apply_write(self, task: Task, write: TaskWrite) -> Task:
        try:
            for name, value in write.fields_to_set.items():
                setattr(task, name, value)
            for name in write.fields_to_clear:
                setattr(task, name, None)
            if write.events_to_append:
                next_position = self.db.query(
                    func.coalesce(func.max(TaskEvent.position), -1)
                ).filter(TaskEvent.task_id == task.id).scalar() + 1
                for offset, record in enumerate(write.events_to_append):
                    self.db.add(_event_row(task.id, next_position + offset, record))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to update task id=%s", task.id)
            raise DomainError(code="TASK_WRITE_FAILED", http_status=500, message="Failed to save task")
        self.db.refresh(task)
        return task
