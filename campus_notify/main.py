"""
Campus Notify: ASGI entrypoint.
create_application() wires middleware, error handling and the v1 routers.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from campus_notify.api.v1.router import api_router
from campus_notify.core.config import settings
from campus_notify.core.exceptions import register_exception_handlers
from campus_notify.core.logging_config import configure_logging
from campus_notify.core.rate_limit import limiter
from campus_notify.db.session import engine
from campus_notify.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str | int]:
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "connectedUsers": ws_manager.connected_user_count,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    logger.info("%s v%s accepting connections", settings.APP_NAME, settings.APP_VERSION)
    try:
        yield
    finally:
        logger.info(
            "%s stopping with %d live push connection(s)",
            settings.APP_NAME,
            ws_manager.connected_user_count,
        )
        await engine.dispose()


def _install_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Route decorators use the same limiter instance, SlowAPIMiddleware reads it from state.
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)


def _install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    register_exception_handlers(app)


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Notification fan-out and subscription matching for the campus app: "
            "organizer, title-series and per-post subscriptions, enriched "
            "notifications, and real-time WebSocket push."
        ),
        lifespan=lifespan,
    )
    _install_middleware(app)
    _install_error_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    app.include_router(health_router)
    return app


app = create_application()
