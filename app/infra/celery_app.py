"""Celery application used for background webhook delivery."""

from celery import Celery

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "helpdesk",
    broker=settings.celery_broker_url,
    include=["app.tasks.deliver_webhook_task"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_ignore_result=True,
    timezone="UTC",
    enable_utc=True,
)
