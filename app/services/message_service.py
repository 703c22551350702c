"""Message ledger: append-only per-conversation log."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.auth.principal import Principal
from app.constants.helpdesk import DomainEvent
from app.core.access import can_view, write_denial_reason
from app.exceptions import (
    ForbiddenError,
    InvalidContentError,
    InvalidStateError,
    NotFoundError,
)
from app.infra.logging_config import get_logger
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.mixins import utcnow
from app.schemas.conversation import MessageWithSender

if TYPE_CHECKING:
    from app.events.dispatcher import EventDispatcher
    from app.realtime.gateway import RealtimeGateway

logger = get_logger("messages")

MESSAGE_NEW_EVENT = "message:new"


class MessageService:
    def __init__(
        self,
        db: Session,
        dispatcher: Optional["EventDispatcher"] = None,
        gateway: Optional["RealtimeGateway"] = None,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.gateway = gateway

    def _get_conversation(
        self, conversation_id: UUID, for_update: bool = False
    ) -> Conversation:
        query = self.db.query(Conversation).filter(Conversation.id == conversation_id)
        if for_update:
            # Serializes appends per conversation so message seq stays unique
            query = query.with_for_update()
        conversation = query.first()
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def append(
        self, principal: Principal, conversation_id: UUID, content: str
    ) -> Message:
        """
        Persist a message, then fan it out.

        The ``message.created`` event and the ``message:new`` broadcast only
        happen after the commit, so a socket recipient never sees a message
        the ledger does not hold.
        """
        if content is None or not content.strip():
            raise InvalidContentError("Content is required")
        conversation = self._get_conversation(conversation_id, for_update=True)
        reason = write_denial_reason(principal, conversation)
        if reason == "not_active":
            raise InvalidStateError("Conversation is not active")
        if reason is not None:
            raise ForbiddenError("Access denied")

        message = Message(
            conversation_id=conversation.id,
            sender_id=principal.id,
            content=content,
        )
        self.db.add(message)
        conversation.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(message)

        logger.info("Message sent in conversation %s", conversation.protocol)
        if self.dispatcher is not None:
            self.dispatcher.emit(
                DomainEvent.MESSAGE_CREATED.value,
                {
                    "messageId": message.id,
                    "conversationId": conversation.id,
                    "senderId": principal.id,
                },
            )
        if self.gateway is not None:
            payload = MessageWithSender.model_validate(message).model_dump(
                mode="json", by_alias=True
            )
            self.gateway.emit_to_conversation(
                conversation.id, MESSAGE_NEW_EVENT, payload
            )
        return message

    def list_for(self, principal: Principal, conversation_id: UUID) -> List[Message]:
        """All messages of a visible conversation, oldest first."""
        conversation = self._get_conversation(conversation_id)
        if not can_view(principal, conversation):
            raise ForbiddenError("Access denied")
        return (
            self.db.query(Message)
            .options(joinedload(Message.sender))
            .filter(Message.conversation_id == conversation.id)
            .order_by(Message.created_at.asc(), Message.seq.asc())
            .all()
        )
