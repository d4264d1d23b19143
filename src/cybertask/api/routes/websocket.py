"""WebSocket push channel.

Clients connect to ``/api/ws?token=<access token>`` and send JSON messages:

- ``{"event": "join-project", "data": {"project_id": "..."}}``
- ``{"event": "leave-project", "data": {"project_id": "..."}}``
- ``{"event": "ping"}``

The server pushes ``taskCreated``, ``taskUpdated`` and ``taskDeleted`` to the
rooms a socket has joined, and ``notification`` to every socket of the
recipient.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.api.dependencies import DBSession, authenticate_token
from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.realtime import connection_manager, project_room
from src.cybertask.models import User, UserRole
from src.cybertask.repositories import ProjectRepository, UserRepository

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


def _error(code: str, message: str) -> dict[str, Any]:
    return {"event": "error", "data": {"code": code, "message": message}}


def _project_id(message: dict[str, Any]) -> UUID | None:
    """``project_id`` from ``data``, or from the message itself."""
    data = message.get("data")
    raw = data.get("project_id") if isinstance(data, dict) else message.get("project_id")
    if raw is None:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None


async def _can_join(session: AsyncSession, user: User, project_id: UUID) -> bool:
    """Owners, members and ADMIN+ may join a project room."""
    repo = ProjectRepository(session)
    try:
        project = await repo.get_by_id(project_id)
        if project is None:
            return False
        if user.role_enum.at_least(UserRole.ADMIN) or project.owner_id == user.id:
            return True
        return await repo.is_member(project_id, user.id)
    finally:
        # Release the pooled connection between messages
        await session.close()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, session: DBSession, token: str = "") -> None:
    # Rejections must close an accepted socket; a pre-accept close is an HTTP 403
    await websocket.accept()
    try:
        user = await authenticate_token(token, UserRepository(session))
    except AppError as e:
        logger.info("WebSocket rejected", code=e.code)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.code)
        return
    finally:
        await session.close()

    await connection_manager.connect(websocket, user.id)
    try:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                await websocket.send_json(_error("INVALID_MESSAGE", "Expected a JSON object"))
                continue

            event = message.get("event")
            if event == "ping":
                await websocket.send_json({"event": "pong"})
            elif event in ("join-project", "leave-project"):
                project_id = _project_id(message)
                if project_id is None:
                    await websocket.send_json(_error("VALIDATION_ERROR", "project_id is required"))
                elif event == "leave-project":
                    connection_manager.leave(websocket, project_room(project_id))
                    await websocket.send_json({"event": "left", "data": {"project_id": str(project_id)}})
                elif await _can_join(session, user, project_id):
                    connection_manager.join(websocket, project_room(project_id))
                    await websocket.send_json({"event": "joined", "data": {"project_id": str(project_id)}})
                else:
                    await websocket.send_json(_error("PROJECT_NOT_FOUND", "Project not found"))
            else:
                await websocket.send_json(_error("UNKNOWN_EVENT", f"Unknown event: {event}"))
    except WebSocketDisconnect:
        pass
    except ValueError:
        # receive_json on a non-JSON frame
        logger.info("WebSocket closed after malformed frame", user_id=str(user.id))
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
    finally:
        connection_manager.disconnect(websocket)
