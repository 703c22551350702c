"""Channels API: list for everyone, create for admins."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user, require_roles
from app.constants.helpdesk import DomainEvent, UserRole
from app.db import get_db
from app.events.dispatcher import EventDispatcher
from app.models.channel import Channel
from app.routers.utils.dependencies import get_channel_by_id, get_dispatcher
from app.schemas.channel import ChannelCreate, ChannelRead
from app.services.channel_service import ChannelService

router = APIRouter(
    prefix="/channels",
    tags=["channels"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=Page[ChannelRead])
def list_channels(
    params: Params = Depends(),
    _current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Page[ChannelRead]:
    """List channels with pagination."""
    query = ChannelService(db).get_channels_query()
    return paginate(query, params=params)


@router.post("", response_model=ChannelRead, status_code=201)
def create_channel(
    data: ChannelCreate,
    _admin=Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> ChannelRead:
    channel = ChannelService(db).create_channel(data)
    dispatcher.emit(
        DomainEvent.CHANNEL_CREATED.value,
        {"channelId": channel.id, "type": channel.type},
    )
    return ChannelRead.model_validate(channel)


@router.get("/{channel_id}", response_model=ChannelRead)
def get_channel(
    _current_user=Depends(get_current_user),
    channel: Channel = Depends(get_channel_by_id),
) -> ChannelRead:
    return ChannelRead.model_validate(channel)
