"""Project schemas for API request/response."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.cybertask.models import MemberRole, Priority, ProjectStatus
from src.cybertask.schemas.common import PaginationMeta, to_naive_utc
from src.cybertask.schemas.user import UserSummary


def _clean_name(v: str | None) -> str | None:
    if v is not None:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Project name must be at least 2 characters")
    return v


def _clean_description(v: str | None) -> str | None:
    if v is not None:
        v = v.strip()
        if not v:
            return None
    return v


class _ProjectFields(BaseModel):
    @field_validator("start_date", "end_date", check_fields=False)
    @classmethod
    def normalize_dates(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)

    @field_validator("description", check_fields=False)
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return _clean_description(v)

    @model_validator(mode="after")
    def check_date_range(self):  # type: ignore[no-untyped-def]
        start = getattr(self, "start_date", None)
        end = getattr(self, "end_date", None)
        if start and end and end < start:
            raise ValueError("end_date must be on or after start_date")
        return self


class ProjectCreate(_ProjectFields):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: datetime | None = None
    end_date: datetime | None = None
    team_members: list[UUID] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)  # type: ignore[return-value]


class ProjectUpdate(_ProjectFields):
    """Partial update. ``team_members``, when present, replaces the member set."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    team_members: list[UUID] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return _clean_name(v)


class ProjectRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    status: ProjectStatus
    priority: Priority
    start_date: datetime | None
    end_date: datetime | None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectSummary(BaseModel):
    """Compact project embedded in tasks."""

    id: UUID
    name: str
    status: ProjectStatus

    model_config = {"from_attributes": True}


class ProjectListItem(ProjectRead):
    owner: UserSummary | None = None
    task_count: int = 0
    member_count: int = 0


class MemberRead(BaseModel):
    user: UserSummary
    role: MemberRole
    joined_at: datetime


class ProjectDetail(ProjectRead):
    owner: UserSummary | None = None
    members: list[MemberRead] = Field(default_factory=list)
    task_stats: dict[str, int] = Field(
        default_factory=dict, description="Task count per status, plus 'total'"
    )


class ProjectList(BaseModel):
    projects: list[ProjectListItem]
    pagination: PaginationMeta


class MemberAdd(BaseModel):
    user_id: UUID
    role: MemberRole = MemberRole.MEMBER
