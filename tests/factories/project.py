"""Project and membership factories."""

from polyfactory import Use

from src.cybertask.models import MemberRole, Priority, Project, ProjectMember, ProjectStatus
from tests.factories.base import BaseFactory, generate_uuid, short_suffix, utc_now


class ProjectFactory(BaseFactory):
    __model__ = Project

    id = Use(generate_uuid)
    name = Use(lambda: f"Project {short_suffix()}")
    description = None
    status = ProjectStatus.ACTIVE.value
    priority = Priority.MEDIUM.value
    start_date = None
    end_date = None
    owner_id = None  # Required FK - must be set explicitly
    created_at = Use(utc_now)
    updated_at = Use(utc_now)


class ProjectMemberFactory(BaseFactory):
    __model__ = ProjectMember

    # FK fields - must be set explicitly
    project_id = None
    user_id = None
    role = MemberRole.MEMBER.value
    joined_at = Use(utc_now)
