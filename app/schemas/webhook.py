"""Pydantic schemas for webhook subscriptions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, HttpUrl

from app.constants.helpdesk import DomainEvent
from app.schemas.base import CamelModel


class WebhookCreate(CamelModel):
    name: str = Field(min_length=1, max_length=256)
    url: HttpUrl
    events: list[DomainEvent] = Field(min_length=1)
    active: bool = True


class WebhookUpdate(CamelModel):
    """Partial update; omitted fields keep their value."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=256)
    url: Optional[HttpUrl] = None
    events: Optional[list[DomainEvent]] = Field(default=None, min_length=1)
    active: Optional[bool] = None


class WebhookRead(CamelModel):
    id: UUID
    name: str
    url: str
    events: list[str]
    active: bool
    created_at: datetime


class WebhookDeliveryResult(CamelModel):
    success: bool
    status: Optional[int] = None
    error: Optional[str] = None
