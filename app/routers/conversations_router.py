"""Conversations API: create, list, detail, assign, close."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import get_current_user, require_roles
from app.auth.principal import Principal
from app.constants.helpdesk import ConversationStatus, UserRole
from app.routers.utils.dependencies import get_conversation_service
from app.schemas.conversation import (
    ConversationCreate,
    ConversationDetail,
    ConversationListItem,
    ConversationRead,
)
from app.services.conversation_service import ConversationService

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=List[ConversationListItem])
def list_conversations(
    status: Optional[ConversationStatus] = Query(None),
    current_user: Principal = Depends(get_current_user),
    svc: ConversationService = Depends(get_conversation_service),
) -> List[ConversationListItem]:
    """List conversations visible to the caller, newest first."""
    conversations = svc.list_conversations(current_user, status=status)
    return [ConversationListItem.model_validate(c) for c in conversations]


@router.post("", response_model=ConversationRead, status_code=201)
def create_conversation(
    data: ConversationCreate,
    current_user: Principal = Depends(get_current_user),
    svc: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    """Open a new conversation (clients only)."""
    conversation = svc.create_conversation(current_user, data)
    return ConversationRead.model_validate(conversation)


@router.get("/{conversation_id}", response_model=ConversationDetail)
def get_conversation(
    conversation_id: UUID,
    current_user: Principal = Depends(get_current_user),
    svc: ConversationService = Depends(get_conversation_service),
) -> ConversationDetail:
    """Get a conversation with its participants and full message history."""
    conversation = svc.get_conversation_detail(current_user, conversation_id)
    return ConversationDetail.model_validate(conversation)


@router.post("/{conversation_id}/assign", response_model=ConversationRead)
def assign_conversation(
    conversation_id: UUID,
    current_user: Principal = Depends(
        require_roles(UserRole.ATTENDANT, UserRole.ADMIN)
    ),
    svc: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    """Claim a pending conversation for the calling attendant."""
    conversation = svc.assign_conversation(current_user, conversation_id)
    return ConversationRead.model_validate(conversation)


@router.post("/{conversation_id}/close", response_model=ConversationRead)
def close_conversation(
    conversation_id: UUID,
    current_user: Principal = Depends(get_current_user),
    svc: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    conversation = svc.close_conversation(current_user, conversation_id)
    return ConversationRead.model_validate(conversation)
