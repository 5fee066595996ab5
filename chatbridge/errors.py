"""
Application error taxonomy.

Every error carries the HTTP status it maps to; ``register_error_handlers``
renders them as ``{"error": message, **extra}`` so no exception crosses the
HTTP boundary unformatted.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra


class ValidationError(ApiError):
    """Missing or malformed request fields."""

    status_code = 400


class AuthError(ApiError):
    """Missing or invalid identity."""

    status_code = 401


class ForbiddenError(AuthError):
    """Authenticated, but not the owner of the resource."""

    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class UpstreamError(ApiError):
    """A third-party API (Stripe, Auth0, LLM, messaging platform) failed."""

    status_code = 502


class PersistenceError(ApiError):
    status_code = 500


def _render(status_code: int, message: str, extra: dict[str, Any] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **(extra or {})})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _render(exc.status_code, exc.message, exc.extra)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _render(400, "Invalid request", {"details": details})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return _render(500, "Database error")
