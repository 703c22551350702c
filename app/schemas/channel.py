from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.constants.helpdesk import ChannelType
from app.schemas.base import CamelModel


class ChannelCreate(CamelModel):
    name: str = Field(min_length=1, max_length=256)
    type: ChannelType
    config: dict[str, Any] = Field(default_factory=dict)


class ChannelRead(CamelModel):
    id: UUID
    name: str
    type: ChannelType
    config: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
