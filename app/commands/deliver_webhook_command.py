"""Command to POST an event envelope to webhook subscribers."""

from __future__ import annotations

from typing import Any, Optional

import requests
from sqlalchemy.orm import Session

from app.config import get_settings
from app.infra.logging_config import get_logger
from app.models.webhook import Webhook
from app.schemas.webhook import WebhookDeliveryResult
from app.services.webhook_service import WebhookService


class DeliverWebhookCommand:
    """
    Send an envelope to every active webhook subscribed to its event, or to a
    single webhook (used by the test endpoint).
    """

    def __init__(self, db: Session, timeout: Optional[float] = None) -> None:
        self.db = db
        self.webhook_service = WebhookService(db)
        self.timeout = timeout or get_settings().webhook_timeout_seconds
        self.logger = get_logger("webhooks")

    def execute(self, envelope: dict[str, Any]) -> int:
        """
        Args:
            envelope: ``{event, timestamp, data}`` as built by the dispatcher

        Returns:
            int: Number of webhooks that answered with a 2xx status
        """
        event = envelope["event"]
        webhooks = self.webhook_service.get_active_webhooks_for_event(event)
        delivered = 0
        for webhook in webhooks:
            if self.send(webhook, envelope).success:
                delivered += 1
        return delivered

    def send(self, webhook: Webhook, envelope: dict[str, Any]) -> WebhookDeliveryResult:
        event = envelope["event"]
        try:
            resp = requests.post(webhook.url, json=envelope, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error("Failed to trigger webhook %s: %s", webhook.name, e)
            return WebhookDeliveryResult(success=False, error=str(e))
        if not resp.ok:
            self.logger.warning(
                "Webhook %s failed with status %s", webhook.name, resp.status_code
            )
            return WebhookDeliveryResult(
                success=False,
                status=resp.status_code,
                error=f"HTTP {resp.status_code}",
            )
        self.logger.info("Webhook %s triggered for %s", webhook.name, event)
        return WebhookDeliveryResult(success=True, status=resp.status_code)
