"""
Realtime socket endpoint.

The handshake token comes from ``?token=`` or an ``Authorization: Bearer``
header and is decoded locally; an unauthenticated socket is accepted and then
closed with code 4401. After that every frame, text or binary, is
``{"event": ..., "data": ...}``.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Any, Optional, Union

from fastapi import APIRouter, Query, WebSocket
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.auth.principal import Principal
from app.auth.tokens import verify_token
from app.exceptions import HelpdeskError, UnauthorizedError
from app.infra.logging_config import get_logger
from app.realtime.gateway import RealtimeGateway, SocketConnection, conversation_room
from app.schemas.realtime import SocketFrame, SocketMessageSend
from app.services.message_service import MessageService
from app.utils.db.db_session_helper import db_session

logger = get_logger("realtime")

UNAUTHORIZED_CLOSE_CODE = 4401

router = APIRouter(tags=["realtime"])


def _conversation_id(data: Any) -> Optional[str]:
    """Accept either a bare id or ``{"conversationId": id}``."""
    if isinstance(data, dict):
        data = data.get("conversationId")
    if data is None:
        return None
    value = str(data).strip()
    return value or None


def _send_error(
    connection: SocketConnection, event: str, status: int, detail: str
) -> None:
    connection.push("error", {"event": event, "status": status, "detail": detail})


class SocketSession:
    """Dispatches inbound frames of one authenticated connection."""

    def __init__(
        self,
        websocket: WebSocket,
        gateway: RealtimeGateway,
        connection: SocketConnection,
    ) -> None:
        self.websocket = websocket
        self.gateway = gateway
        self.connection = connection
        self.handlers = {
            "join:conversation": self.on_join,
            "leave:conversation": self.on_leave,
            "typing:start": self.on_typing_start,
            "typing:stop": self.on_typing_stop,
            "message:send": self.on_message_send,
        }

    @property
    def principal(self) -> Principal:
        return self.connection.principal

    async def handle(self, raw: Union[str, bytes]) -> None:
        """Text and binary frames carry the same JSON."""
        try:
            frame = SocketFrame.model_validate_json(raw)
        except ValidationError:
            _send_error(self.connection, "unknown", 400, "Malformed frame")
            return
        handler = self.handlers.get(frame.event)
        if handler is None:
            _send_error(self.connection, frame.event, 400, "Unknown event")
            return
        await handler(frame.data)

    async def on_join(self, data: Any) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            _send_error(self.connection, "join:conversation", 400, "conversationId required")
            return
        self.gateway.join(self.connection, conversation_room(conversation_id))
        logger.debug(
            "User %s joined conversation %s", self.principal.email, conversation_id
        )
        self.connection.push("conversation:joined", {"conversationId": conversation_id})

    async def on_leave(self, data: Any) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            return
        self.gateway.leave(self.connection, conversation_room(conversation_id))
        logger.debug(
            "User %s left conversation %s", self.principal.email, conversation_id
        )

    async def on_typing_start(self, data: Any) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            return
        self.gateway.emit(
            conversation_room(conversation_id),
            "typing:user",
            {
                "conversationId": conversation_id,
                "user": {"id": self.principal.id, "name": self.principal.name},
            },
            skip=self.connection,
        )

    async def on_typing_stop(self, data: Any) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            return
        self.gateway.emit(
            conversation_room(conversation_id),
            "typing:stop",
            {"conversationId": conversation_id, "userId": self.principal.id},
            skip=self.connection,
        )

    async def on_message_send(self, data: Any) -> None:
        """
        Persist through the message ledger; the ledger broadcasts ``message:new``.

        Socket messages get the same authorization as ``POST /messages``.
        """
        try:
            payload = SocketMessageSend.model_validate(data)
        except ValidationError:
            _send_error(
                self.connection, "message:send", 400, "conversationId and content are required"
            )
            return
        try:
            await run_in_threadpool(self._append, payload)
        except HelpdeskError as e:
            _send_error(self.connection, "message:send", e.status_code, e.detail)
        except Exception:
            logger.exception("Failed to persist socket message")
            _send_error(self.connection, "message:send", 500, "Internal server error")

    def _append(self, payload: SocketMessageSend) -> None:
        app_state = self.websocket.app.state
        with db_session(app_state.session_factory) as db:
            MessageService(
                db,
                dispatcher=app_state.dispatcher,
                gateway=self.gateway,
            ).append(self.principal, payload.conversation_id, payload.content)


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    gateway: RealtimeGateway = websocket.app.state.gateway
    try:
        principal = verify_token(token or websocket.headers.get("authorization"))
    except UnauthorizedError as e:
        logger.info("Socket handshake rejected: %s", e.detail)
        await websocket.accept()
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason=e.detail)
        return

    await websocket.accept()
    connection = SocketConnection(websocket, principal, asyncio.get_running_loop())
    gateway.register(connection)
    writer = asyncio.create_task(connection.run_writer())
    connection.push(
        "connection:ready",
        {
            "user": {
                "id": principal.id,
                "email": principal.email,
                "role": principal.role,
                "name": principal.name,
            }
        },
    )
    session = SocketSession(websocket, gateway, connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            try:
                await session.handle(raw)
            except Exception:
                logger.exception("Error handling socket frame from %s", principal.email)
                _send_error(connection, "unknown", 500, "Internal server error")
    finally:
        gateway.unregister(connection)
        connection.close()
        with suppress(Exception):
            await writer
