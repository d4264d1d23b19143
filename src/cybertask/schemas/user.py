import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator

from src.cybertask.core.security import validate_password_strength
from src.cybertask.models import UserRole
from src.cybertask.schemas.common import PaginationMeta

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")


def validate_username(v: str) -> str:
    if not USERNAME_PATTERN.match(v):
        raise ValueError(
            "Username must be 3-30 characters and contain only letters, numbers and underscores"
        )
    return v


def check_new_password(v: str, info: ValidationInfo) -> str:
    """Password policy, with already-validated identity fields as zxcvbn hints."""
    hints = [
        str(info.data[name])
        for name in ("email", "username", "first_name", "last_name")
        if info.data.get(name)
    ]
    return validate_password_strength(v, user_inputs=hints)


class UserSummary(BaseModel):
    """Compact user embedded in projects, tasks and comments."""

    id: UUID
    username: str
    email: EmailStr
    first_name: str
    last_name: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class UserRead(BaseModel):
    id: UUID
    email: EmailStr
    username: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    email_verified: bool
    avatar_url: str | None
    bio: str | None
    phone: str | None
    timezone: str
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserDetail(UserRead):
    owned_project_count: int = 0
    assigned_task_count: int = 0


class UserList(BaseModel):
    users: list[UserRead]
    pagination: PaginationMeta


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    bio: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, max_length=30)
    timezone: str | None = Field(default=None, min_length=1, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=500)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Name cannot be empty or whitespace only")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        if v is not None and not re.match(r"^\+?[0-9 ()\-]{5,30}$", v):
            raise ValueError("Invalid phone number")
        return v


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class RoleUpdate(BaseModel):
    role: UserRole


class StatusUpdate(BaseModel):
    is_active: bool
