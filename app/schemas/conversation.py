"""Pydantic schemas for conversations and messages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.constants.helpdesk import ConversationStatus
from app.schemas.base import CamelModel
from app.schemas.user import SenderSummary, UserSummary

# -----------------------------------------------------------------------------
# Message schemas
# -----------------------------------------------------------------------------


class MessageCreate(CamelModel):
    """Body of POST /messages. Blank content is rejected by the service."""

    conversation_id: UUID
    content: str = Field(max_length=10_000)


class MessageRead(CamelModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime


class MessageWithSender(MessageRead):
    sender: Optional[SenderSummary] = None


# -----------------------------------------------------------------------------
# Conversation schemas
# -----------------------------------------------------------------------------


class ConversationCreate(CamelModel):
    channel_id: Optional[UUID] = None
    initial_message: Optional[str] = Field(default=None, max_length=10_000)


class ConversationRead(CamelModel):
    id: UUID
    protocol: str
    channel_id: Optional[UUID] = None
    client_id: UUID
    attendant_id: Optional[UUID] = None
    status: ConversationStatus
    created_at: datetime
    updated_at: datetime


class ConversationListItem(ConversationRead):
    """List row with denormalized participants and the latest message."""

    client: Optional[UserSummary] = None
    attendant: Optional[UserSummary] = None
    last_message: Optional[MessageRead] = None


class ConversationDetail(ConversationRead):
    client: Optional[UserSummary] = None
    attendant: Optional[UserSummary] = None
    messages: list[MessageWithSender] = []
