"""Webhooks API (admin): manage subscriptions to domain events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.auth.dependencies import require_roles
from app.commands.deliver_webhook_command import DeliverWebhookCommand
from app.constants.helpdesk import DomainEvent, UserRole
from app.db import get_db
from app.events.dispatcher import EventDispatcher, build_envelope
from app.models.webhook import Webhook
from app.routers.utils.dependencies import get_dispatcher, get_webhook_by_id
from app.schemas.webhook import (
    WebhookCreate,
    WebhookDeliveryResult,
    WebhookRead,
    WebhookUpdate,
)
from app.services.webhook_service import WebhookService

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
    responses={404: {"description": "Not found"}},
)


@router.get("/events", response_model=list[str])
def list_webhook_events() -> list[str]:
    """Event names a webhook can subscribe to."""
    return [e.value for e in DomainEvent]


@router.get("", response_model=Page[WebhookRead])
def list_webhooks(
    params: Params = Depends(),
    db: Session = Depends(get_db),
) -> Page[WebhookRead]:
    query = WebhookService(db).get_webhooks_query()
    return paginate(query, params=params)


@router.post("", response_model=WebhookRead, status_code=201)
def create_webhook(
    data: WebhookCreate,
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> WebhookRead:
    webhook = WebhookService(db).create_webhook(data)
    dispatcher.emit(DomainEvent.WEBHOOK_CREATED.value, {"webhookId": webhook.id})
    return WebhookRead.model_validate(webhook)


@router.delete("/{webhook_id}", status_code=204)
def delete_webhook(
    webhook: Webhook = Depends(get_webhook_by_id),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> Response:
    webhook_id = webhook.id
    WebhookService(db).delete_webhook(webhook_id)
    dispatcher.emit(DomainEvent.WEBHOOK_DELETED.value, {"webhookId": webhook_id})
    return Response(status_code=204)


@router.put("/{webhook_id}", response_model=WebhookRead)
def update_webhook(
    data: WebhookUpdate,
    webhook: Webhook = Depends(get_webhook_by_id),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> WebhookRead:
    updated = WebhookService(db).update_webhook(webhook.id, data)
    dispatcher.emit(DomainEvent.WEBHOOK_UPDATED.value, {"webhookId": updated.id})
    return WebhookRead.model_validate(updated)


@router.post("/{webhook_id}/test", response_model=WebhookDeliveryResult)
def send_test_webhook(
    webhook: Webhook = Depends(get_webhook_by_id),
    db: Session = Depends(get_db),
) -> WebhookDeliveryResult:
    """Send a sample envelope to this webhook now and report how it answered."""
    envelope = build_envelope("test", {"message": "This is a test webhook"})
    return DeliverWebhookCommand(db).send(webhook, envelope)
