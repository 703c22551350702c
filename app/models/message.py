"""Message model: append-only log entries of a conversation."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
    func,
    select,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.mixins import utcnow


def next_message_seq(context) -> int:
    """1 + the highest ``seq`` already stored for the row's conversation."""
    conversation_id = context.get_current_parameters()["conversation_id"]
    messages = Message.__table__
    current = context.connection.execute(
        select(func.max(messages.c.seq)).where(
            messages.c.conversation_id == conversation_id
        )
    ).scalar()
    return (current or 0) + 1


class Message(Base):
    """Immutable once inserted; there is no update or delete path."""

    __tablename__ = "messages"

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ux_messages_conversation_seq", "conversation_id", "seq", unique=True),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False
    )
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    # Insertion order within the conversation; breaks created_at ties
    seq = Column(Integer, default=next_message_seq, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User")
