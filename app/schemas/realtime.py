"""Frames exchanged over the realtime socket: ``{"event": ..., "data": ...}``."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.base import CamelModel


class SocketFrame(BaseModel):
    event: str = Field(min_length=1)
    data: Any = None


class SocketMessageSend(CamelModel):
    """Payload of the inbound ``message:send`` event."""

    conversation_id: UUID
    content: str
