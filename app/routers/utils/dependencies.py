from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.events.dispatcher import EventDispatcher
from app.models.channel import Channel
from app.models.webhook import Webhook
from app.realtime.gateway import RealtimeGateway
from app.exceptions import NotFoundError
from app.services.channel_service import ChannelService
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService
from app.services.webhook_service import WebhookService


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


def get_gateway(request: Request) -> RealtimeGateway:
    return request.app.state.gateway


def get_conversation_service(
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    gateway: RealtimeGateway = Depends(get_gateway),
) -> ConversationService:
    return ConversationService(db, dispatcher=dispatcher, gateway=gateway)


def get_message_service(
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    gateway: RealtimeGateway = Depends(get_gateway),
) -> MessageService:
    return MessageService(db, dispatcher=dispatcher, gateway=gateway)


def get_channel_by_id(
    channel_id: UUID,
    db: Session = Depends(get_db),
) -> Channel:
    """FastAPI dependency to get a channel by ID."""
    channel = ChannelService(db).get_channel(channel_id)
    if channel is None:
        raise NotFoundError("Channel not found")
    return channel


def get_webhook_by_id(
    webhook_id: UUID,
    db: Session = Depends(get_db),
) -> Webhook:
    """FastAPI dependency to get a webhook by ID."""
    webhook = WebhookService(db).get_webhook(webhook_id)
    if webhook is None:
        raise NotFoundError("Webhook not found")
    return webhook
