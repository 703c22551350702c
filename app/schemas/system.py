from typing import Optional

from pydantic import BaseModel


class AppGroup(BaseModel):
    name: str
    environment: str
    log_level: str
    port: int


class DatabaseGroup(BaseModel):
    database_host: Optional[str] = None
    database_driver: Optional[str] = None
    pool_size: int
    max_overflow: int


class RealtimeGroup(BaseModel):
    connections: int


class ConversationsGroup(BaseModel):
    protocol_max_attempts: int
    webhooks_enabled: bool
    webhook_timeout_seconds: float


class SystemSettingsGrouped(BaseModel):
    app: AppGroup
    database: DatabaseGroup
    realtime: RealtimeGroup
    conversations: ConversationsGroup
