"""Tests for task comment endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.cybertask.models import Notification, User
from tests.factories import TaskCommentFactory
from tests.helpers import auth_headers, create_project, create_task

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


class TestComments:
    async def test_add_comment_notifies_creator_and_assignee(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        user: User,
        other_user: User,
        manager: User,
    ) -> None:
        project = await create_project(db_session, owner=user, members=[other_user, manager])
        task = await create_task(db_session, project, user, assigned_to_id=other_user.id)

        response = await client.post(
            f"/api/tasks/{task.id}/comments",
            json={"content": "  Ready for review  "},
            headers=auth_headers(manager),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["content"] == "Ready for review"
        assert data["user"]["id"] == str(manager.id)
        result = await db_session.execute(
            select(Notification.user_id).where(Notification.type == "COMMENT_ADDED")
        )
        assert set(result.scalars().all()) == {user.id, other_user.id}

    async def test_author_is_not_notified(
        self, client: AsyncClient, db_session: AsyncSession, user: User, user_headers: dict
    ) -> None:
        project = await create_project(db_session, owner=user)
        task = await create_task(db_session, project, user, assigned_to_id=user.id)

        await client.post(
            f"/api/tasks/{task.id}/comments", json={"content": "Note to self"}, headers=user_headers
        )

        result = await db_session.execute(select(Notification))
        assert result.scalars().all() == []

    async def test_blank_comment(
        self, client: AsyncClient, db_session: AsyncSession, user: User, user_headers: dict
    ) -> None:
        project = await create_project(db_session, owner=user)
        task = await create_task(db_session, project, user)

        response = await client.post(
            f"/api/tasks/{task.id}/comments", json={"content": "   "}, headers=user_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_list_comments_paginated(
        self, client: AsyncClient, db_session: AsyncSession, user: User, user_headers: dict
    ) -> None:
        project = await create_project(db_session, owner=user)
        task = await create_task(db_session, project, user)
        for i in range(3):
            db_session.add(TaskCommentFactory.build(task_id=task.id, user_id=user.id, content=f"#{i}"))
        await db_session.commit()

        response = await client.get(
            f"/api/tasks/{task.id}/comments", params={"limit": 2, "page": 2}, headers=user_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["comments"]) == 1
        assert data["pagination"] == {"current": 2, "pages": 2, "total": 3, "limit": 2}

    async def test_comments_on_invisible_task(
        self, client: AsyncClient, db_session: AsyncSession, user: User, other_headers: dict
    ) -> None:
        project = await create_project(db_session, owner=user)
        task = await create_task(db_session, project, user)

        response = await client.get(f"/api/tasks/{task.id}/comments", headers=other_headers)

        assert response.status_code == 404
