"""Project and project membership models."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.cybertask.models.base import utc_now
from src.cybertask.models.enums import MemberRole, Priority, ProjectStatus


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100, index=True)
    description: str | None = Field(default=None, max_length=2000)
    status: str = Field(default=ProjectStatus.ACTIVE.value, max_length=20, index=True)
    priority: str = Field(default=Priority.MEDIUM.value, max_length=20)
    start_date: datetime | None = Field(default=None)
    end_date: datetime | None = Field(default=None)
    owner_id: UUID = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class ProjectMember(SQLModel, table=True):
    """Junction table for project membership. The owner is never stored here."""

    __tablename__ = "project_members"

    project_id: UUID = Field(foreign_key="projects.id", primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(default=MemberRole.MEMBER.value, max_length=20)
    joined_at: datetime = Field(default_factory=utc_now)
