"""Channel model: an inbound/outbound medium with an opaque config blob."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Column, String, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class Channel(Base, TimestampMixin):
    __tablename__ = "channels"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=False)
    type = Column(String(32), nullable=False)
    config = Column(JSON, nullable=False, default=dict)
