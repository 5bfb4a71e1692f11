# chatapp/core/exceptions.py
"""
Domain exceptions for the social/chat backend.

Services raise these before touching persistent state; the API layer turns
them into JSON responses through ``register_error_handlers``.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class InvalidRequest(DomainException):
    """Malformed or self-referential input."""

    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(DomainException):
    """A state-machine precondition was violated."""

    # Clients treat duplicate friend requests as a plain bad request.
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(DomainException):
    """Target does not exist, or the caller does not own it."""

    status_code = status.HTTP_404_NOT_FOUND


class Internal(DomainException):
    """Persistence or infrastructure failure."""


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            {"message": exc.message, "code": exc.code},
            status_code=exc.status_code,
        )

    # Framework and auth errors use the same body shape as domain errors
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            {"message": str(exc.detail), "code": f"HTTP_{exc.status_code}"},
            status_code=exc.status_code,
            headers=exc.headers,
        )
