"""
Room-based fan-out for realtime connections.

Rooms are ``user:<id>``, ``role:<role>`` and ``conversation:<id>``. Emitting
is safe from any thread: frames are handed to each connection's own event
loop and written by that connection's writer task, so synchronous REST
handlers can broadcast without awaiting.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections import defaultdict
from typing import Any, Optional, Protocol

from fastapi.encoders import jsonable_encoder
from fastapi import WebSocket

from app.auth.principal import Principal
from app.constants.helpdesk import UserRole
from app.infra.logging_config import get_logger

logger = get_logger("realtime")


def user_room(user_id) -> str:
    return f"user:{user_id}"


def role_room(role: UserRole | str) -> str:
    return f"role:{role}"


def conversation_room(conversation_id) -> str:
    return f"conversation:{conversation_id}"


class Connection(Protocol):
    id: str
    principal: Principal

    def push(self, event: str, data: Any) -> None: ...


class SocketConnection:
    """One accepted websocket plus its outgoing frame queue."""

    def __init__(
        self,
        websocket: WebSocket,
        principal: Principal,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.principal = principal
        self._loop = loop
        self._queue: asyncio.Queue[Optional[dict[str, Any]]] = asyncio.Queue()

    def push(self, event: str, data: Any) -> None:
        frame = {"event": event, "data": jsonable_encoder(data)}
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, frame)
        except RuntimeError:
            logger.debug("Dropping %s for closed connection %s", event, self.id)

    def close(self) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, None)
        except RuntimeError:
            pass

    async def run_writer(self) -> None:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            await self.websocket.send_json(frame)


class RealtimeGateway:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rooms: dict[str, dict[str, Connection]] = defaultdict(dict)
        self._memberships: dict[str, set[str]] = {}
        self._connections: dict[str, Connection] = {}

    # -- membership -----------------------------------------------------------

    def register(self, connection: Connection) -> None:
        """Track a new connection and place it in its personal and role rooms."""
        with self._lock:
            self._connections[connection.id] = connection
            self._memberships[connection.id] = set()
        principal = connection.principal
        self.join(connection, user_room(principal.id))
        self.join(connection, role_room(principal.role))
        logger.info(
            "User connected: %s (%d connections)",
            principal.email or principal.id,
            len(self._connections),
        )

    def unregister(self, connection: Connection) -> None:
        with self._lock:
            rooms = self._memberships.pop(connection.id, set())
            for room in rooms:
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.pop(connection.id, None)
                if not members:
                    del self._rooms[room]
            self._connections.pop(connection.id, None)
        logger.info(
            "User disconnected: %s",
            connection.principal.email or connection.principal.id,
        )

    def join(self, connection: Connection, room: str) -> None:
        with self._lock:
            if connection.id not in self._connections:
                return
            self._rooms[room][connection.id] = connection
            self._memberships[connection.id].add(room)

    def leave(self, connection: Connection, room: str) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.pop(connection.id, None)
                if not members:
                    del self._rooms[room]
            self._memberships.get(connection.id, set()).discard(room)

    def rooms_of(self, connection: Connection) -> set[str]:
        with self._lock:
            return set(self._memberships.get(connection.id, set()))

    def members(self, room: str) -> list[Connection]:
        with self._lock:
            return list(self._rooms.get(room, {}).values())

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # -- delivery -------------------------------------------------------------

    def emit(
        self,
        room: str,
        event: str,
        data: Any,
        skip: Optional[Connection] = None,
    ) -> int:
        """Push ``event`` to every member of ``room`` except ``skip``; returns recipients."""
        recipients = [c for c in self.members(room) if skip is None or c.id != skip.id]
        for connection in recipients:
            connection.push(event, data)
        return len(recipients)

    def emit_to_user(self, user_id, event: str, data: Any) -> int:
        return self.emit(user_room(user_id), event, data)

    def emit_to_role(self, role: UserRole | str, event: str, data: Any) -> int:
        return self.emit(role_room(role), event, data)

    def emit_to_conversation(self, conversation_id, event: str, data: Any) -> int:
        return self.emit(conversation_room(conversation_id), event, data)

    def emit_to_all(self, event: str, data: Any) -> int:
        with self._lock:
            recipients = list(self._connections.values())
        for connection in recipients:
            connection.push(event, data)
        return len(recipients)
