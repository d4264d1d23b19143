"""Real-time push channel over WebSockets.

Sockets join rooms named ``project:<id>``. Task lifecycle events are broadcast
to every socket in the project's room; notifications go to every socket of
one user. Delivery is best effort: nothing is queued or replayed.
"""

from collections import defaultdict
from enum import Enum
from typing import Any
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from src.cybertask.core.logging import get_logger

logger = get_logger(__name__)


class TaskEvent(str, Enum):
    """Events broadcast to project rooms."""

    CREATED = "taskCreated"
    UPDATED = "taskUpdated"
    DELETED = "taskDeleted"


NOTIFICATION_EVENT = "notification"


def project_room(project_id: UUID | str) -> str:
    return f"project:{project_id}"


class ConnectionManager:
    """Tracks live sockets per user and per room."""

    def __init__(self) -> None:
        self.user_connections: dict[str, set[WebSocket]] = defaultdict(set)
        self.rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._socket_users: dict[WebSocket, str] = {}

    @property
    def connection_count(self) -> int:
        return len(self._socket_users)

    async def connect(self, websocket: WebSocket, user_id: UUID | str) -> None:
        """Register an accepted socket for a user."""
        key = str(user_id)
        self.user_connections[key].add(websocket)
        self._socket_users[websocket] = key
        logger.info("WebSocket connected", user_id=key)

    def disconnect(self, websocket: WebSocket) -> None:
        """Forget a socket and remove it from every room."""
        user_id = self._socket_users.pop(websocket, None)
        if user_id is not None:
            sockets = self.user_connections.get(user_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.user_connections[user_id]
        for room in [name for name, members in self.rooms.items() if websocket in members]:
            self.leave(websocket, room)
        if user_id is not None:
            logger.info("WebSocket disconnected", user_id=user_id)

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms[room].add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def _send(self, sockets: set[WebSocket], message: dict[str, Any]) -> int:
        payload = jsonable_encoder(message)
        delivered = 0
        for websocket in list(sockets):
            try:
                await websocket.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping dead WebSocket", error=str(e))
                self.disconnect(websocket)
        return delivered

    async def broadcast(self, room: str, event: str, data: Any) -> int:
        """Send ``{"event", "data"}`` to every socket in ``room``.

        Returns:
            Number of sockets the message was delivered to.
        """
        sockets = self.rooms.get(room)
        if not sockets:
            return 0
        return await self._send(sockets, {"event": event, "data": data})

    async def send_to_user(self, user_id: UUID | str, event: str, data: Any) -> int:
        """Send ``{"event", "data"}`` to every socket of one user."""
        sockets = self.user_connections.get(str(user_id))
        if not sockets:
            return 0
        return await self._send(sockets, {"event": event, "data": data})

    async def emit_task_event(self, project_id: UUID, event: TaskEvent, data: Any) -> int:
        """Broadcast a task lifecycle event to the project's room."""
        delivered = await self.broadcast(project_room(project_id), event.value, data)
        logger.debug(
            "Task event broadcast",
            task_event=event.value,
            project_id=str(project_id),
            delivered=delivered,
        )
        return delivered

    def reset(self) -> None:
        """Drop all state (tests only)."""
        self.user_connections.clear()
        self.rooms.clear()
        self._socket_users.clear()


connection_manager = ConnectionManager()
