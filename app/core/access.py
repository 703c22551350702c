"""
Role-based access rules for conversations.

Every read, write and transition check in the service layer goes through
these predicates so that list, get, append, assign and close agree on who
may do what.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from app.auth.principal import Principal
from app.constants.helpdesk import ConversationStatus, UserRole
from app.models.conversation import Conversation


def can_create(principal: Principal) -> bool:
    return principal.role == UserRole.CLIENT


def can_assign(principal: Principal) -> bool:
    return principal.role in (UserRole.ATTENDANT, UserRole.ADMIN)


def can_view(principal: Principal, conversation: Conversation) -> bool:
    """Clients see their own threads; attendants see pending ones and their own."""
    if principal.is_admin:
        return True
    if principal.is_client:
        return conversation.client_id == principal.id
    if principal.is_attendant:
        return (
            conversation.attendant_id == principal.id
            or conversation.status == ConversationStatus.PENDING
        )
    return False


def can_close(principal: Principal, conversation: Conversation) -> bool:
    if principal.is_admin:
        return True
    if principal.is_client:
        return conversation.client_id == principal.id
    if principal.is_attendant:
        return conversation.attendant_id == principal.id
    return False


def write_denial_reason(
    principal: Principal, conversation: Conversation
) -> Optional[str]:
    """
    Return None when the principal may append to the conversation.

    Otherwise return ``"forbidden"`` (not the owner or assignee) or
    ``"not_active"`` (a client writing to a conversation nobody claimed yet,
    or one that is already closed).
    Attendants keep write access to conversations they closed.
    """
    if principal.is_admin:
        return None
    if principal.is_client:
        if conversation.client_id != principal.id:
            return "forbidden"
        if conversation.status != ConversationStatus.ACTIVE:
            return "not_active"
        return None
    if principal.is_attendant:
        if conversation.attendant_id != principal.id:
            return "forbidden"
        return None
    return "forbidden"


def can_write(principal: Principal, conversation: Conversation) -> bool:
    return write_denial_reason(principal, conversation) is None


def visibility_clause(principal: Principal) -> Optional[ColumnElement[bool]]:
    """SQL form of ``can_view`` for list queries; None means no restriction."""
    if principal.is_admin:
        return None
    if principal.is_client:
        return Conversation.client_id == principal.id
    if principal.is_attendant:
        return or_(
            Conversation.status == ConversationStatus.PENDING.value,
            Conversation.attendant_id == principal.id,
        )
    return Conversation.id.is_(None)
