"""Dashboard statistics and recent activity."""

from src.cybertask.models import User
from src.cybertask.repositories import DashboardRepository
from src.cybertask.schemas.dashboard import DashboardActivity, DashboardStats
from src.cybertask.services.project_service import ProjectService
from src.cybertask.services.task_service import TaskService

RECENT_PROJECTS_LIMIT = 5


def completion_percent(completed: int, total: int) -> int:
    """Whole percentage, halves rounded up (1 of 8 is 13)."""
    if not total:
        return 0
    return (completed * 200 + total) // (2 * total)


class DashboardService:
    """Computed on every request, never cached."""

    def __init__(
        self,
        dashboard_repo: DashboardRepository,
        task_service: TaskService,
        project_service: ProjectService,
    ):
        self.dashboard_repo = dashboard_repo
        self.task_service = task_service
        self.project_service = project_service

    async def stats(self, user: User) -> DashboardStats:
        counts = await self.dashboard_repo.task_counts(user.id)
        total = counts.total_tasks
        completed = counts.completed_tasks
        return DashboardStats(
            total_tasks=total,
            completed_tasks=completed,
            in_progress_tasks=counts.in_progress_tasks,
            todo_tasks=counts.todo_tasks,
            review_tasks=counts.review_tasks,
            overdue_tasks=counts.overdue_tasks,
            total_projects=counts.total_projects,
            pending_tasks=counts.todo_tasks + counts.review_tasks,
            total_active_tasks=total - completed,
            completion_rate=completion_percent(completed, total),
        )

    async def activity(self, user: User, limit: int) -> DashboardActivity:
        tasks = await self.dashboard_repo.recent_tasks(user.id, limit)
        projects = await self.dashboard_repo.recent_projects(user.id, RECENT_PROJECTS_LIMIT)
        return DashboardActivity(
            recent_tasks=await self.task_service.build_list_items(tasks),
            recent_projects=await self.project_service.build_list_items(projects),
        )
