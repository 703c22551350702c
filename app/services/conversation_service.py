"""
Conversation lifecycle: create, assign, close, list and read.

Transitions are ``pending -> active -> closed`` and ``pending -> closed``;
nothing leaves ``closed``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, joinedload, selectinload

from app.auth.principal import Principal
from app.config import get_settings
from app.constants.helpdesk import ConversationStatus, DomainEvent
from app.core.access import (
    can_assign,
    can_close,
    can_create,
    can_view,
    visibility_clause,
)
from app.core.protocol import generate_protocol
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from app.infra.logging_config import get_logger
from app.models.channel import Channel
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.mixins import utcnow
from app.schemas.conversation import ConversationCreate, ConversationRead

if TYPE_CHECKING:
    from app.events.dispatcher import EventDispatcher
    from app.realtime.gateway import RealtimeGateway

logger = get_logger("conversations")


def _is_protocol_collision(error: IntegrityError) -> bool:
    """True when the violated constraint is the unique protocol index."""
    return "protocol" in str(error.orig).lower()


class ConversationService:
    def __init__(
        self,
        db: Session,
        dispatcher: Optional["EventDispatcher"] = None,
        gateway: Optional["RealtimeGateway"] = None,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.gateway = gateway

    # -- reads ------------------------------------------------------------------

    def get_conversation(self, conversation_id: UUID) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .first()
        )

    def _get_or_404(self, conversation_id: UUID) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def protocol_exists(self, protocol: str) -> bool:
        return (
            self.db.query(Conversation.id)
            .filter(Conversation.protocol == protocol)
            .first()
            is not None
        )

    def list_conversations(
        self,
        principal: Principal,
        status: Optional[ConversationStatus] = None,
    ) -> list[Conversation]:
        """Conversations visible to ``principal``, newest first, with last_message attached."""
        query = self.db.query(Conversation).options(
            joinedload(Conversation.client),
            joinedload(Conversation.attendant),
        )
        clause = visibility_clause(principal)
        if clause is not None:
            query = query.filter(clause)
        if status is not None:
            query = query.filter(Conversation.status == ConversationStatus(status).value)
        conversations = query.order_by(Conversation.created_at.desc()).all()
        self.attach_last_messages(conversations)
        return conversations

    def attach_last_messages(self, conversations: Sequence[Conversation]) -> None:
        """Set ``last_message`` (or None) on each conversation with one query."""
        ids = [c.id for c in conversations]
        latest: dict[UUID, Message] = {}
        if ids:
            ranked = (
                select(
                    Message,
                    func.row_number()
                    .over(
                        partition_by=Message.conversation_id,
                        order_by=(Message.created_at.desc(), Message.seq.desc()),
                    )
                    .label("rn"),
                )
                .where(Message.conversation_id.in_(ids))
                .subquery()
            )
            last = aliased(Message, ranked)
            for message in self.db.scalars(select(last).where(ranked.c.rn == 1)):
                latest[message.conversation_id] = message
        for conversation in conversations:
            conversation.last_message = latest.get(conversation.id)

    def get_conversation_detail(
        self, principal: Principal, conversation_id: UUID
    ) -> Conversation:
        """
        Conversation with participants and ordered messages.

        Attendants may preview any pending conversation before claiming it.
        """
        conversation = (
            self.db.query(Conversation)
            .options(
                joinedload(Conversation.client),
                joinedload(Conversation.attendant),
                selectinload(Conversation.messages).joinedload(Message.sender),
            )
            .filter(Conversation.id == conversation_id)
            .first()
        )
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if not can_view(principal, conversation):
            raise ForbiddenError("Access denied")
        return conversation

    # -- transitions --------------------------------------------------------------

    def create_conversation(
        self, principal: Principal, data: ConversationCreate
    ) -> Conversation:
        if not can_create(principal):
            raise ForbiddenError("Only clients can create conversations")
        if data.channel_id is not None:
            if self.db.get(Channel, data.channel_id) is None:
                raise NotFoundError("Channel not found")

        has_initial = bool(data.initial_message and data.initial_message.strip())
        max_attempts = get_settings().protocol_max_attempts
        for attempt in range(1, max_attempts + 1):
            protocol = generate_protocol()
            if self.protocol_exists(protocol):
                logger.info("Protocol %s already taken (attempt %d)", protocol, attempt)
                continue
            conversation = Conversation(
                protocol=protocol,
                channel_id=data.channel_id,
                client_id=principal.id,
                status=ConversationStatus.PENDING.value,
            )
            self.db.add(conversation)
            if has_initial:
                self.db.add(
                    Message(
                        conversation=conversation,
                        sender_id=principal.id,
                        content=data.initial_message,
                    )
                )
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                if not _is_protocol_collision(e):
                    raise
                # Another request took the same code between the check and the insert.
                logger.warning(
                    "Protocol %s collided on insert (attempt %d)", protocol, attempt
                )
                continue
            self.db.refresh(conversation)
            logger.info("Conversation created: %s", conversation.protocol)
            self._emit(
                DomainEvent.CONVERSATION_CREATED,
                ConversationRead.model_validate(conversation).model_dump(
                    mode="json", by_alias=True
                ),
            )
            return conversation

        logger.error("No free protocol code after %d attempts", max_attempts)
        raise ConflictError("Could not allocate a protocol code")

    def assign_conversation(
        self, principal: Principal, conversation_id: UUID
    ) -> Conversation:
        """
        Claim a pending conversation for ``principal``.

        The claim is one conditional UPDATE guarded by ``status = 'pending'``,
        so of several concurrent assigners exactly one sees an affected row;
        the others get InvalidStateError and the winner's attendant is kept.
        """
        if not can_assign(principal):
            raise ForbiddenError(
                "Only attendants and admins can assign conversations"
            )
        conversation = self._get_or_404(conversation_id)
        if conversation.status != ConversationStatus.PENDING:
            raise InvalidStateError("Conversation is not pending")

        claimed = (
            self.db.query(Conversation)
            .filter(
                Conversation.id == conversation_id,
                Conversation.status == ConversationStatus.PENDING.value,
            )
            .update(
                {
                    Conversation.attendant_id: principal.id,
                    Conversation.status: ConversationStatus.ACTIVE.value,
                    Conversation.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if claimed != 1:
            self.db.rollback()
            logger.info(
                "Lost assignment race for conversation %s", conversation_id
            )
            raise InvalidStateError("Conversation is not pending")
        self.db.commit()
        self.db.refresh(conversation)

        logger.info(
            "Conversation %s assigned to %s",
            conversation.protocol,
            principal.email or principal.id,
        )
        self._emit(
            DomainEvent.CONVERSATION_ASSIGNED,
            {"conversationId": conversation.id, "attendantId": principal.id},
        )
        if self.gateway is not None:
            self.gateway.emit_to_user(
                conversation.client_id,
                "conversation:assigned",
                {
                    "conversationId": conversation.id,
                    "protocol": conversation.protocol,
                    "attendant": {"id": principal.id, "name": principal.name},
                },
            )
        return conversation

    def close_conversation(
        self, principal: Principal, conversation_id: UUID
    ) -> Conversation:
        """Close a conversation. Closing an already closed one is a no-op."""
        conversation = self._get_or_404(conversation_id)
        if not can_close(principal, conversation):
            raise ForbiddenError("Access denied")
        if conversation.status == ConversationStatus.CLOSED:
            return conversation

        conversation.status = ConversationStatus.CLOSED.value
        conversation.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(conversation)

        logger.info("Conversation %s closed", conversation.protocol)
        self._emit(
            DomainEvent.CONVERSATION_CLOSED, {"conversationId": conversation.id}
        )
        if self.gateway is not None:
            self.gateway.emit_to_conversation(
                conversation.id,
                "conversation:closed",
                {"conversationId": conversation.id, "closedBy": principal.id},
            )
        return conversation

    def _emit(self, event: DomainEvent, payload: dict[str, Any]) -> None:
        if self.dispatcher is not None:
            self.dispatcher.emit(event.value, payload)
