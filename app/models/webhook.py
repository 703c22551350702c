"""Webhook subscription: an URL notified for a set of domain events."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, Column, String, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class Webhook(Base, TimestampMixin):
    __tablename__ = "webhooks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=False)
    url = Column(String(2048), nullable=False)
    events = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)
