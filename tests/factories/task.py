"""Task, comment and notification factories."""

from polyfactory import Use

from src.cybertask.models import (
    Notification,
    NotificationType,
    Priority,
    Task,
    TaskComment,
    TaskStatus,
)
from tests.factories.base import BaseFactory, generate_uuid, short_suffix, utc_now


class TaskFactory(BaseFactory):
    __model__ = Task

    id = Use(generate_uuid)
    title = Use(lambda: f"Task {short_suffix()}")
    description = None
    status = TaskStatus.TODO.value
    priority = Priority.MEDIUM.value
    project_id = None  # Required FK - must be set explicitly
    assigned_to_id = None
    created_by_id = None  # Required FK - must be set explicitly
    due_date = None
    estimated_hours = None
    actual_hours = None
    tags = Use(list)
    archived_at = None
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def done(cls, **kwargs):
        return cls.build(status=TaskStatus.DONE.value, **kwargs)


class TaskCommentFactory(BaseFactory):
    __model__ = TaskComment

    id = Use(generate_uuid)
    task_id = None
    user_id = None
    content = "Looks good to me"
    created_at = Use(utc_now)
    updated_at = Use(utc_now)


class NotificationFactory(BaseFactory):
    __model__ = Notification

    id = Use(generate_uuid)
    user_id = None
    type = NotificationType.TASK_ASSIGNED.value
    title = "Task assigned"
    message = "You have been assigned a task"
    data = None
    is_read = False
    read_at = None
    created_at = Use(utc_now)
