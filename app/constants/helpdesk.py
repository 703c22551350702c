"""Roles, conversation states, channel types and domain event names."""

from enum import StrEnum


class UserRole(StrEnum):
    CLIENT = "client"
    ATTENDANT = "attendant"
    ADMIN = "admin"


class ConversationStatus(StrEnum):
    """Lifecycle states. Transitions: pending -> active -> closed, pending -> closed."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


class ChannelType(StrEnum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    EMAIL = "email"
    WEBCHAT = "webchat"
    SMS = "sms"


class DomainEvent(StrEnum):
    """Events fanned out to webhook subscribers."""

    AUTH_LOGIN = "auth.login"
    AUTH_REGISTER = "auth.register"
    CONVERSATION_CREATED = "conversation.created"
    CONVERSATION_ASSIGNED = "conversation.assigned"
    CONVERSATION_CLOSED = "conversation.closed"
    MESSAGE_CREATED = "message.created"
    CHANNEL_CREATED = "channel.created"
    WEBHOOK_CREATED = "webhook.created"
    WEBHOOK_UPDATED = "webhook.updated"
    WEBHOOK_DELETED = "webhook.deleted"


PROTOCOL_ALPHABET = "0123456789ABCDEF"
PROTOCOL_LENGTH = 13
