"""
Domain event fan-out to webhook subscribers.

``emit`` never blocks the caller and never raises: the envelope is queued on
Celery and delivered by a worker. Failures are logged and dropped (no retry,
no dead-letter queue).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder
from kombu.exceptions import OperationalError

from app.infra.logging_config import get_logger
from app.tasks.deliver_webhook_task import deliver_webhook_task

logger = get_logger("webhooks")


class EventDispatcher(Protocol):
    def emit(self, event: str, payload: dict[str, Any]) -> None: ...


def build_envelope(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "event": str(event),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": jsonable_encoder(payload),
    }


class NullDispatcher:
    """Dispatcher used when webhooks are disabled."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        logger.debug("Webhooks disabled; dropping %s", event)


class WebhookDispatcher:
    """Queue ``{event, timestamp, data}`` for every active webhook subscribed to ``event``."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        envelope = build_envelope(event, payload)
        try:
            deliver_webhook_task.delay(envelope)
        except OperationalError as e:
            logger.error("Could not enqueue webhook delivery for %s: %s", event, e)
