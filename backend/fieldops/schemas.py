"""Pydantic schemas for API."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional
from datetime import datetime
from uuid import UUID


class LocationPoint(BaseModel):
    name: str = ""
    coordinates: str = ""
    address: str = ""
    model_config = ConfigDict(from_attributes=True)


# Task schemas
class TaskCreate(BaseModel):
    """Closed creation shape: unknown fields are ignored, never persisted."""
    task_code: Optional[str] = Field(default=None, max_length=16)
    task_name: str
    bs_number: str
    bs_address: str
    task_description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    bs_location: Optional[list[dict[str, Any]]] = None
    bs_latitude: Optional[float | str] = None
    bs_longitude: Optional[float | str] = None
    total_cost: Optional[float | str] = None
    executor_id: Optional[str] = None
    executor_name: Optional[str] = None
    executor_email: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TaskPatchRequest(BaseModel):
    """Sparse patch: only fields present in the body are considered."""
    task_name: Optional[str] = None
    bs_number: Optional[str] = None
    bs_address: Optional[str] = None
    task_description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    bs_location: Optional[list[dict[str, Any]]] = None
    bs_latitude: Optional[float | str] = None
    bs_longitude: Optional[float | str] = None
    total_cost: Optional[float | str] = None
    executor_id: Optional[str] = None
    executor_name: Optional[str] = None
    executor_email: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TaskEventResponse(BaseModel):
    action: str
    author: str
    author_id: str
    date: datetime
    details: dict[str, Any] = {}
    model_config = ConfigDict(from_attributes=True)


class TaskResponse(BaseModel):
    id: UUID
    task_code: str
    org_id: UUID
    project_id: UUID
    task_name: str
    bs_number: str
    bs_address: str
    task_description: Optional[str] = None
    status: Optional[str] = None
    priority: str
    due_date: Optional[datetime] = None
    bs_location: list[LocationPoint] = []
    bs_latitude: Optional[float] = None
    bs_longitude: Optional[float] = None
    total_cost: Optional[float] = None
    executor_id: Optional[str] = None
    executor_name: Optional[str] = None
    executor_email: Optional[str] = None
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    events: list[TaskEventResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskHistoryEntry(BaseModel):
    """Reconciled timeline row."""
    action: str
    title: str
    author: str
    author_id: str
    date: datetime
    details: dict[str, Any] = {}
    model_config = ConfigDict(from_attributes=True)
