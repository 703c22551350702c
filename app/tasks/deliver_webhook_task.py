"""Celery task delivering one domain event to its webhook subscribers."""

from __future__ import annotations

from typing import Any

from app.commands.deliver_webhook_command import DeliverWebhookCommand
from app.infra.celery_app import celery_app
from app.utils.db.db_session_helper import db_session


@celery_app.task(name="app.tasks.deliver_webhook_task.deliver_webhook_task")
def deliver_webhook_task(envelope: dict[str, Any]) -> int:
    """
    POST an ``{event, timestamp, data}`` envelope to every active webhook
    subscribed to its event. Not retried; failed deliveries are logged.
    """
    with db_session() as db:
        return DeliverWebhookCommand(db).execute(envelope)
