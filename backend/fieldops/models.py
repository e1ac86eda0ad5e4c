"""SQLAlchemy models."""
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, JSON, Uuid,
    ForeignKey, CheckConstraint, Index, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Organization(Base):
    """Organization model (multi-tenant support)."""
    __tablename__ = "organizations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    projects = relationship("Project", back_populates="organization")


class Project(Base):
    """Project inside an organization; carries the operator/region context."""
    __tablename__ = "projects"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    key = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    operator_code = Column(String(20), nullable=True)
    region_code = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("org_id", "key", name="uq_project_org_key"),
    )

    # Relationships
    organization = relationship("Organization", back_populates="projects")


class Task(Base):
    """Field work order tied to a base station."""
    __tablename__ = "tasks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id"), nullable=False, index=True)
    task_code = Column(String(16), nullable=False)
    task_name = Column(String(500), nullable=False)
    bs_number = Column(String(100), nullable=False, index=True)
    bs_address = Column(Text, nullable=False)
    task_description = Column(Text, nullable=True)
    # Free-form statuses from older clients are stored as-is, so no CHECK here.
    status = Column(String(30), default="To do", index=True)
    priority = Column(String(10), default="medium", nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    bs_location = Column(JSONDocument, nullable=False, default=list)
    bs_latitude = Column(Float, nullable=True)
    bs_longitude = Column(Float, nullable=True)
    total_cost = Column(Float, nullable=True)
    executor_id = Column(String(100), nullable=True, index=True)
    executor_name = Column(String(255), nullable=True)
    executor_email = Column(String(255), nullable=True)
    author_id = Column(String(100), nullable=True)
    author_name = Column(String(255), nullable=True)
    author_email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            priority.in_(["urgent", "high", "medium", "low"]),
            name="chk_task_priority",
        ),
        UniqueConstraint("project_id", "task_code", name="uq_task_project_code"),
    )

    # Relationships
    events = relationship(
        "TaskEvent",
        back_populates="task",
        order_by="TaskEvent.position",
        cascade="all, delete-orphan",
    )


class TaskEvent(Base):
    """Append-only audit event attached to a task."""
    __tablename__ = "task_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    action = Column(String(50), nullable=False, index=True)
    author = Column(String(255), nullable=False)
    author_id = Column(String(100), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    details = Column(JSONDocument, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("task_id", "position", name="uq_task_event_position"),
    )

    # Relationships
    task = relationship("Task", back_populates="events")


class BaseStation(Base):
    """Base-station registry entry (canonical coordinates and address)."""
    __tablename__ = "base_stations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=True, index=True)
    num = Column(String(100), nullable=True, index=True)
    coordinates = Column(String(64), nullable=False, default="")  # "lat lon"
    address = Column(Text, nullable=False, default="")
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)
    region_code = Column(String(20), nullable=True, index=True)
    operator_code = Column(String(20), nullable=True, index=True)
    source = Column(String(20), nullable=True, default="kmz")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_base_stations_lookup", "num", "operator_code", "region_code"),
    )
