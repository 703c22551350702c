"""Conversation model: one support thread, identified to humans by its protocol code."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from app.constants.helpdesk import ConversationStatus
from app.db import Base
from app.models.mixins import TimestampMixin


class Conversation(Base, TimestampMixin):
    """
    A client's support thread.

    ``attendant_id`` stays NULL while the conversation is pending and is set
    exactly once, by the conditional claim in ``ConversationService.assign``.
    """

    __tablename__ = "conversations"

    __table_args__ = (
        Index("ix_conversations_status_created", "status", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    protocol = Column(String(13), unique=True, nullable=False, index=True)
    channel_id = Column(
        Uuid(as_uuid=True), ForeignKey("channels.id"), nullable=True
    )
    client_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    attendant_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )
    status = Column(
        String(16), nullable=False, default=ConversationStatus.PENDING.value
    )

    client = relationship("User", foreign_keys=[client_id])
    attendant = relationship("User", foreign_keys=[attendant_id])
    channel = relationship("Channel")
    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="[Message.created_at, Message.seq]",
    )
