"""Projects and project membership.

Owners and members can read a project; only the owner (or an ADMIN+) can
change it. Projects a user cannot see are reported as missing.
"""

from collections.abc import Iterable
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.models import (
    MemberRole,
    NotificationType,
    Project,
    ProjectMember,
    TaskStatus,
    User,
    UserRole,
)
from src.cybertask.models.base import column_values, utc_now
from src.cybertask.repositories import ProjectRepository, UserRepository
from src.cybertask.schemas.common import PaginationMeta
from src.cybertask.schemas.project import (
    MemberAdd,
    MemberRead,
    ProjectCreate,
    ProjectDetail,
    ProjectList,
    ProjectListItem,
    ProjectRead,
    ProjectUpdate,
)
from src.cybertask.schemas.user import UserSummary
from src.cybertask.services.notification_service import NotificationService

logger = get_logger(__name__)


def is_admin(user: User) -> bool:
    return user.role_enum.at_least(UserRole.ADMIN)


def _project_not_found() -> AppError:
    return AppError("Project not found", status.HTTP_404_NOT_FOUND, "PROJECT_NOT_FOUND")


class ProjectService:
    def __init__(
        self,
        project_repo: ProjectRepository,
        user_repo: UserRepository,
        notification_service: NotificationService,
        session: AsyncSession,
    ):
        self.project_repo = project_repo
        self.user_repo = user_repo
        self.notifications = notification_service
        self.session = session

    # Access

    async def is_participant(self, project: Project, user_id: UUID) -> bool:
        """Owner or stored member."""
        return project.owner_id == user_id or await self.project_repo.is_member(
            project.id, user_id
        )

    async def get_accessible(self, project_id: UUID, user: User) -> Project:
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise _project_not_found()
        if is_admin(user) or await self.is_participant(project, user.id):
            return project
        raise _project_not_found()

    async def get_owned(self, project_id: UUID, user: User) -> Project:
        project = await self.get_accessible(project_id, user)
        if project.owner_id != user.id and not is_admin(user):
            raise AppError(
                "Only the project owner can perform this action",
                status.HTTP_403_FORBIDDEN,
                "OWNER_REQUIRED",
            )
        return project

    # Views

    async def build_list_items(self, projects: list[Project]) -> list[ProjectListItem]:
        ids = [p.id for p in projects]
        owners = await self.user_repo.get_many(p.owner_id for p in projects)
        task_counts = await self.project_repo.task_counts(ids)
        member_counts = await self.project_repo.member_counts(ids)
        items = []
        for project in projects:
            owner = owners.get(project.owner_id)
            items.append(
                ProjectListItem(
                    **ProjectRead.model_validate(project).model_dump(),
                    owner=UserSummary.model_validate(owner) if owner else None,
                    task_count=task_counts.get(project.id, 0),
                    member_count=member_counts.get(project.id, 0),
                )
            )
        return items

    async def _members(self, project_id: UUID) -> list[MemberRead]:
        return [
            MemberRead(
                user=UserSummary.model_validate(user),
                role=MemberRole(member.role),
                joined_at=member.joined_at,
            )
            for member, user in await self.project_repo.list_members(project_id)
        ]

    async def _detail(self, project: Project) -> ProjectDetail:
        owner = await self.user_repo.get_by_id(project.owner_id)
        breakdown = await self.project_repo.task_status_breakdown(project.id)
        task_stats = {s.value: breakdown.get(s.value, 0) for s in TaskStatus}
        task_stats["total"] = sum(breakdown.values())
        return ProjectDetail(
            **ProjectRead.model_validate(project).model_dump(),
            owner=UserSummary.model_validate(owner) if owner else None,
            members=await self._members(project.id),
            task_stats=task_stats,
        )

    # Membership helpers

    async def _require_users(self, user_ids: Iterable[UUID]) -> set[UUID]:
        wanted = set(user_ids)
        found = await self.user_repo.get_many(wanted)
        if missing := wanted - found.keys():
            raise AppError(
                f"User not found: {', '.join(sorted(str(m) for m in missing))}",
                status.HTTP_400_BAD_REQUEST,
                "USER_NOT_FOUND",
            )
        return wanted

    def _invite(self, project: Project, user_id: UUID, inviter: User) -> None:
        self.notifications.stage(
            user_id,
            NotificationType.PROJECT_INVITE,
            "Added to project",
            f"{inviter.full_name} added you to project '{project.name}'",
            {"project_id": str(project.id)},
        )

    # Operations

    async def create(self, user: User, data: ProjectCreate) -> ProjectDetail:
        member_ids = await self._require_users(data.team_members)
        member_ids.discard(user.id)
        try:
            project = Project(
                **column_values(data.model_dump(exclude={"team_members"})),
                owner_id=user.id,
            )
            self.project_repo.add(project)
            await self.session.flush()
            for member_id in member_ids:
                self.project_repo.add_member(ProjectMember(project_id=project.id, user_id=member_id))
                self._invite(project, member_id, user)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            self.notifications.discard()
            raise
        await self.notifications.publish()
        logger.info("Project created", project_id=str(project.id), members=len(member_ids))
        return await self._detail(project)

    async def list_projects(
        self,
        user: User,
        page: int,
        limit: int,
        search: str | None = None,
        status: str | None = None,
        priority: str | None = None,
    ) -> ProjectList:
        projects, total = await self.project_repo.list_for_user(
            user.id, page, limit, search=search, status=status, priority=priority
        )
        return ProjectList(
            projects=await self.build_list_items(projects),
            pagination=PaginationMeta.from_counts(page, limit, total),
        )

    async def get_detail(self, project_id: UUID, user: User) -> ProjectDetail:
        return await self._detail(await self.get_accessible(project_id, user))

    async def update(self, project_id: UUID, user: User, data: ProjectUpdate) -> ProjectDetail:
        project = await self.get_owned(project_id, user)
        changes = column_values(data.model_dump(exclude_unset=True, exclude={"team_members"}))

        start = changes.get("start_date", project.start_date)
        end = changes.get("end_date", project.end_date)
        if start and end and end < start:
            raise AppError(
                "end_date must be on or after start_date",
                status.HTTP_400_BAD_REQUEST,
                "VALIDATION_ERROR",
            )

        try:
            for field, value in changes.items():
                setattr(project, field, value)
            project.updated_at = utc_now()
            self.session.add(project)
            if data.team_members is not None:
                await self._replace_members(project, data.team_members, user)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            self.notifications.discard()
            raise
        await self.notifications.publish()
        return await self._detail(project)

    async def _replace_members(self, project: Project, user_ids: list[UUID], actor: User) -> None:
        wanted = await self._require_users(user_ids)
        wanted.discard(project.owner_id)
        current = {m.user_id: m for m, _ in await self.project_repo.list_members(project.id)}

        for user_id in current.keys() - wanted:
            await self.project_repo.unassign_member_tasks(project.id, user_id)
            await self.session.delete(current[user_id])
        for user_id in wanted - current.keys():
            self.project_repo.add_member(ProjectMember(project_id=project.id, user_id=user_id))
            self._invite(project, user_id, actor)

    async def delete(self, project_id: UUID, user: User) -> None:
        project = await self.get_owned(project_id, user)
        if await self.project_repo.count_tasks(project.id):
            raise AppError(
                "Cannot delete a project that still has tasks",
                status.HTTP_400_BAD_REQUEST,
                "PROJECT_HAS_TASKS",
            )
        try:
            await self.project_repo.delete_members(project.id)
            await self.project_repo.delete(project)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Project deleted", project_id=str(project_id))

    async def list_members(self, project_id: UUID, user: User) -> list[MemberRead]:
        project = await self.get_accessible(project_id, user)
        return await self._members(project.id)

    async def add_member(self, project_id: UUID, user: User, data: MemberAdd) -> MemberRead:
        project = await self.get_owned(project_id, user)
        new_member = await self.user_repo.get_by_id(data.user_id)
        if new_member is None:
            raise AppError("User not found", status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND")
        if await self.is_participant(project, new_member.id):
            raise AppError(
                "User is already a member of this project",
                status.HTTP_400_BAD_REQUEST,
                "ALREADY_MEMBER",
            )
        try:
            member = ProjectMember(project_id=project.id, user_id=new_member.id, role=data.role.value)
            self.project_repo.add_member(member)
            project.updated_at = utc_now()
            self.session.add(project)
            self._invite(project, new_member.id, user)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            self.notifications.discard()
            raise
        await self.notifications.publish()
        logger.info("Project member added", project_id=str(project.id), member_id=str(new_member.id))
        return MemberRead(
            user=UserSummary.model_validate(new_member),
            role=data.role,
            joined_at=member.joined_at,
        )

    async def remove_member(self, project_id: UUID, user: User, member_user_id: UUID) -> None:
        """Remove a member and unassign their tasks in this project."""
        project = await self.get_owned(project_id, user)
        if member_user_id == project.owner_id:
            raise AppError(
                "The project owner cannot be removed",
                status.HTTP_400_BAD_REQUEST,
                "CANNOT_REMOVE_OWNER",
            )
        member = await self.project_repo.get_member(project.id, member_user_id)
        if member is None:
            raise AppError(
                "User is not a member of this project",
                status.HTTP_404_NOT_FOUND,
                "NOT_A_MEMBER",
            )
        try:
            await self.project_repo.unassign_member_tasks(project.id, member_user_id)
            await self.session.delete(member)
            project.updated_at = utc_now()
            self.session.add(project)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            "Project member removed", project_id=str(project.id), member_id=str(member_user_id)
        )
