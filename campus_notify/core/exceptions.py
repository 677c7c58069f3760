"""
Custom HTTP exceptions and global exception handlers for Campus Notify.
All application-level errors are defined here for consistency.
"""
from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Custom exception classes ──────────────────────────────────────────────────

class CampusNotifyException(Exception):
    """Base exception for all Campus Notify domain errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "CAMPUS_NOTIFY_ERROR"
        super().__init__(detail)


class NotFoundException(CampusNotifyException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class InvalidArgumentException(CampusNotifyException):
    """A required identifier or content argument is missing or blank."""

    def __init__(self, argument: str, detail: str | None = None) -> None:
        self.argument = argument
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail or f"{argument} cannot be null or empty",
            error_code="INVALID_ARGUMENT",
        )


class UnauthorizedException(CampusNotifyException):
    def __init__(self, detail: str = "User not authenticated") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class InvalidTokenException(CampusNotifyException):
    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_TOKEN",
        )


def require(value: str | None, argument: str) -> str:
    """Return value stripped of surrounding whitespace, or raise InvalidArgumentException."""
    if value is None or not value.strip():
        raise InvalidArgumentException(argument)
    return value.strip()


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": detail,
            "data": None,
            "error": error_code,
        },
    )


async def campus_notify_exception_handler(
    request: Request, exc: CampusNotifyException
) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.error_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Request validation failed",
            "data": None,
            "error": "VALIDATION_ERROR",
            "errors": errors,
        },
    )


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="The notification store is unavailable",
        error_code="STORE_FAILURE",
    )


async def store_timeout_handler(request: Request, exc: asyncio.TimeoutError) -> JSONResponse:
    logger.error("Store call timed out on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="The notification store did not answer in time",
        error_code="STORE_TIMEOUT",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected internal server error occurred",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(CampusNotifyException, campus_notify_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, store_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(asyncio.TimeoutError, store_timeout_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
