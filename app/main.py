"""Application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.db import SessionLocal
from app.events.dispatcher import NullDispatcher, WebhookDispatcher
from app.exceptions import HelpdeskError
from app.infra.logging_config import LoggingConfig, get_logger
from app.realtime.gateway import RealtimeGateway
from app.realtime.socket_router import router as socket_router
from app.routers.auth_router import router as auth_router
from app.routers.channels_router import router as channels_router
from app.routers.conversations_router import router as conversations_router
from app.routers.messages_router import router as messages_router
from app.routers.system import router as system_router
from app.routers.users_router import router as users_router
from app.routers.webhooks_router import router as webhooks_router

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    yield
    logger.info("Shutting down %s", settings.app_name)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HelpdeskError)
    async def helpdesk_error_handler(request: Request, exc: HelpdeskError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500, content={"detail": "Internal server error"}
        )


def create_app(testing: bool = False) -> FastAPI:
    LoggingConfig()
    settings = get_settings()

    app = FastAPI(
        title="Helpdesk API",
        description="Support conversations between clients and attendants",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.gateway = RealtimeGateway()
    app.state.session_factory = SessionLocal
    if settings.webhooks_enabled and not testing:
        app.state.dispatcher = WebhookDispatcher()
    else:
        app.state.dispatcher = NullDispatcher()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(system_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(channels_router)
    app.include_router(conversations_router)
    app.include_router(messages_router)
    app.include_router(webhooks_router)
    app.include_router(socket_router)
    return app
