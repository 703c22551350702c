from fastapi import APIRouter, Depends, Request

from app.auth.dependencies import require_roles
from app.config import get_settings
from app.constants.helpdesk import UserRole
from app.schemas.system import (
    AppGroup,
    ConversationsGroup,
    DatabaseGroup,
    RealtimeGroup,
    SystemSettingsGrouped,
)

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/system/settings", response_model=SystemSettingsGrouped)
def get_system_settings(
    request: Request,
    _admin=Depends(require_roles(UserRole.ADMIN)),
) -> SystemSettingsGrouped:
    """Return grouped, non-sensitive system configuration settings for troubleshooting."""
    s = get_settings()

    # Extract safe database info only (no credentials)
    database_host = None
    database_driver = None
    try:
        url_obj = s.database_url_obj
        database_host = url_obj.host
        database_driver = url_obj.get_backend_name()
    except ValueError:
        pass

    return SystemSettingsGrouped(
        app=AppGroup(
            name=s.app_name,
            environment=s.environment,
            log_level=s.log_level,
            port=s.port,
        ),
        database=DatabaseGroup(
            database_host=database_host,
            database_driver=database_driver,
            pool_size=s.database_pool_size,
            max_overflow=s.database_max_overflow,
        ),
        realtime=RealtimeGroup(
            connections=request.app.state.gateway.connection_count,
        ),
        conversations=ConversationsGroup(
            protocol_max_attempts=s.protocol_max_attempts,
            webhooks_enabled=s.webhooks_enabled,
            webhook_timeout_seconds=s.webhook_timeout_seconds,
        ),
    )
