"""Webhook subscription CRUD and event matching."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Query, Session

from app.models.webhook import Webhook
from app.schemas.webhook import WebhookCreate, WebhookUpdate


class WebhookService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_webhook(self, webhook_id: UUID) -> Optional[Webhook]:
        return self.db.query(Webhook).filter(Webhook.id == webhook_id).first()

    def get_webhooks_query(self) -> Query[Webhook]:
        return self.db.query(Webhook).order_by(Webhook.created_at.desc())

    def get_active_webhooks_for_event(self, event: str) -> List[Webhook]:
        """Active webhooks whose event list contains ``event``."""
        active = self.db.query(Webhook).filter(Webhook.active.is_(True)).all()
        return [w for w in active if event in (w.events or [])]

    def create_webhook(self, data: WebhookCreate) -> Webhook:
        webhook = Webhook(
            name=data.name,
            url=str(data.url),
            events=[e.value for e in data.events],
            active=data.active,
        )
        self.db.add(webhook)
        self.db.commit()
        self.db.refresh(webhook)
        return webhook

    def update_webhook(
        self, webhook_id: UUID, data: WebhookUpdate
    ) -> Optional[Webhook]:
        """Apply the fields set in ``data``; ``None`` if the webhook is missing."""
        webhook = self.get_webhook(webhook_id)
        if webhook is None:
            return None
        if data.name is not None:
            webhook.name = data.name
        if data.url is not None:
            webhook.url = str(data.url)
        if data.events is not None:
            webhook.events = [e.value for e in data.events]
        if data.active is not None:
            webhook.active = data.active
        self.db.commit()
        self.db.refresh(webhook)
        return webhook

    def delete_webhook(self, webhook_id: UUID) -> bool:
        webhook = self.get_webhook(webhook_id)
        if webhook is None:
            return False
        self.db.delete(webhook)
        self.db.commit()
        return True
