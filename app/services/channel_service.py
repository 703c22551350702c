from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Query, Session

from app.models.channel import Channel
from app.schemas.channel import ChannelCreate


class ChannelService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_channel(self, channel_id: UUID) -> Optional[Channel]:
        return self.db.query(Channel).filter(Channel.id == channel_id).first()

    def get_channels_query(self) -> Query[Channel]:
        return self.db.query(Channel).order_by(Channel.created_at.desc())

    def create_channel(self, data: ChannelCreate) -> Channel:
        channel = Channel(name=data.name, type=data.type.value, config=data.config)
        self.db.add(channel)
        self.db.commit()
        self.db.refresh(channel)
        return channel
