"""Task, comment and dependency schemas."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.cybertask.models import Priority, TaskStatus
from src.cybertask.schemas.common import PaginationMeta, to_naive_utc
from src.cybertask.schemas.project import ProjectSummary
from src.cybertask.schemas.user import UserSummary

Tag = Annotated[str, Field(min_length=1, max_length=50)]
Hours = Annotated[float, Field(ge=0, le=1000)]


def _clean_title(v: str | None) -> str | None:
    if v is not None:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Title must be at least 2 characters")
    return v


class _TaskFields(BaseModel):
    @field_validator("due_date", check_fields=False)
    @classmethod
    def normalize_due_date(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)

    @field_validator("tags", check_fields=False)
    @classmethod
    def dedupe_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        seen: list[str] = []
        for tag in (t.strip() for t in v):
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class TaskCreate(_TaskFields):
    title: str = Field(min_length=2, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    project_id: UUID
    assigned_to_id: UUID | None = None
    due_date: datetime | None = None
    estimated_hours: Hours | None = None
    tags: list[Tag] = Field(default_factory=list, max_length=20)
    dependencies: list[UUID] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)  # type: ignore[return-value]


class TaskUpdate(_TaskFields):
    """Partial update. ``dependencies``, when present, replaces the dependency set."""

    title: str | None = Field(default=None, min_length=2, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: TaskStatus | None = None
    priority: Priority | None = None
    assigned_to_id: UUID | None = None
    due_date: datetime | None = None
    estimated_hours: Hours | None = None
    actual_hours: Hours | None = None
    tags: list[Tag] | None = Field(default=None, max_length=20)
    dependencies: list[UUID] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return _clean_title(v)


class TaskRead(BaseModel):
    id: UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: Priority
    project_id: UUID
    assigned_to_id: UUID | None
    created_by_id: UUID
    due_date: datetime | None
    estimated_hours: float | None
    actual_hours: float | None
    tags: list[str]
    archived_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskSummary(BaseModel):
    """Compact task embedded in dependency listings."""

    id: UUID
    title: str
    status: TaskStatus
    priority: Priority
    due_date: datetime | None

    model_config = {"from_attributes": True}


class TaskListItem(TaskRead):
    project: ProjectSummary | None = None
    assigned_to: UserSummary | None = None
    created_by: UserSummary | None = None
    comment_count: int = 0
    dependency_count: int = 0
    dependent_count: int = 0


class CommentRead(BaseModel):
    id: UUID
    task_id: UUID
    content: str
    user: UserSummary | None = None
    created_at: datetime
    updated_at: datetime


class DependencyRead(BaseModel):
    task_id: UUID
    depends_on_id: UUID
    created_at: datetime
    depends_on: TaskSummary


class DependentRead(BaseModel):
    task_id: UUID
    depends_on_id: UUID
    created_at: datetime
    task: TaskSummary


class TaskDetail(TaskListItem):
    comments: list[CommentRead] = Field(default_factory=list)
    dependencies: list[DependencyRead] = Field(default_factory=list)
    dependents: list[DependentRead] = Field(default_factory=list)


class TaskList(BaseModel):
    tasks: list[TaskListItem]
    pagination: PaginationMeta


class CommentList(BaseModel):
    comments: list[CommentRead]
    pagination: PaginationMeta


class AssignRequest(BaseModel):
    user_id: UUID


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=1000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment cannot be empty or whitespace only")
        return v


class DependencyCreate(BaseModel):
    depends_on_id: UUID


class TaskDeleted(BaseModel):
    task_id: UUID
