"""
FastAPI dependency injection functions.
Provides get_db, get_current_user_id, get_notifier and get_notification_service.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.core.exceptions import InvalidTokenException, UnauthorizedException
from campus_notify.core.security import user_id_from_token
from campus_notify.db.session import get_db
from campus_notify.services.notification_service import NotificationService
from campus_notify.services.push import Notifier, websocket_notifier

# Re-export get_db so routes can import from one place
__all__ = [
    "get_db",
    "get_current_user_id",
    "get_notifier",
    "get_notification_service",
    "DBSession",
    "CurrentUserId",
    "NotificationServiceDep",
]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> str:
    """
    Extract and validate the JWT access token from the Authorization header.
    Returns the caller's user id (the token subject).
    """
    if credentials is None:
        raise UnauthorizedException("User not authenticated")

    try:
        return user_id_from_token(credentials.credentials)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")


def get_notifier() -> Notifier:
    """The live push channel. Tests override this with a recording fake."""
    return websocket_notifier


def get_notification_service(
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> NotificationService:
    return NotificationService(notifier)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
