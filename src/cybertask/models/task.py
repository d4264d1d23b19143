"""Task, task dependency and task comment models."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Column, Index
from sqlmodel import Field, SQLModel

from src.cybertask.models.base import JSONType, utc_now
from src.cybertask.models.enums import Priority, TaskStatus


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_status", "project_id", "status"),
        Index("ix_tasks_assignee_status", "assigned_to_id", "status"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=200, index=True)
    description: str | None = Field(default=None, max_length=2000)
    status: str = Field(default=TaskStatus.TODO.value, max_length=20)
    priority: str = Field(default=Priority.MEDIUM.value, max_length=20)
    project_id: UUID = Field(foreign_key="projects.id", index=True)
    assigned_to_id: UUID | None = Field(default=None, foreign_key="users.id")
    created_by_id: UUID = Field(foreign_key="users.id", index=True)
    due_date: datetime | None = Field(default=None, index=True)
    estimated_hours: float | None = Field(default=None)
    actual_hours: float | None = Field(default=None)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    archived_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class TaskDependency(SQLModel, table=True):
    """Edge ``task_id -> depends_on_id``: the task waits on ``depends_on_id``."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        CheckConstraint("task_id <> depends_on_id", name="ck_task_dependencies_no_self"),
    )

    task_id: UUID = Field(foreign_key="tasks.id", primary_key=True)
    depends_on_id: UUID = Field(foreign_key="tasks.id", primary_key=True, index=True)
    created_at: datetime = Field(default_factory=utc_now)


class TaskComment(SQLModel, table=True):
    __tablename__ = "task_comments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    content: str = Field(max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
