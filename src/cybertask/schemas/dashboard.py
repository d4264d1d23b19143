from pydantic import BaseModel

from src.cybertask.schemas.project import ProjectListItem
from src.cybertask.schemas.task import TaskListItem


class DashboardStats(BaseModel):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    todo_tasks: int
    review_tasks: int
    overdue_tasks: int
    total_projects: int
    pending_tasks: int
    total_active_tasks: int
    completion_rate: int


class DashboardActivity(BaseModel):
    recent_tasks: list[TaskListItem]
    recent_projects: list[ProjectListItem]
