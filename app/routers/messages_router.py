"""Messages API: append to and read a conversation's ledger."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.auth.principal import Principal
from app.routers.utils.dependencies import get_message_service
from app.schemas.conversation import MessageCreate, MessageWithSender
from app.services.message_service import MessageService

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=MessageWithSender, status_code=201)
def send_message(
    data: MessageCreate,
    current_user: Principal = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
) -> MessageWithSender:
    """Append a message and broadcast it to the conversation room."""
    message = svc.append(current_user, data.conversation_id, data.content)
    return MessageWithSender.model_validate(message)


@router.get(
    "/conversation/{conversation_id}", response_model=List[MessageWithSender]
)
def list_messages(
    conversation_id: UUID,
    current_user: Principal = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
) -> List[MessageWithSender]:
    messages = svc.list_for(current_user, conversation_id)
    return [MessageWithSender.model_validate(m) for m in messages]
