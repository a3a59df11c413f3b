"""Domain errors and their HTTP mapping.

Services raise only the exceptions defined here. Each carries a stable
machine-readable ``code`` that clients can switch on, a short message and
the HTTP status the API answers with. Nothing here is fatal to the process.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AffiliateError(Exception):
    """Base domain error."""

    code = "error"
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFoundError(AffiliateError):
    """Referenced link, product, payout or user is absent."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class InvalidAmountError(AffiliateError):
    """Amount is non-positive or below the configured minimum."""

    code = "invalid_amount"
    default_message = "Invalid amount."


class InsufficientBalanceError(AffiliateError):
    code = "insufficient_balance"
    default_message = "Insufficient balance."


class ConflictError(AffiliateError):
    """Duplicate unique key, concurrent race or invalid state transition."""

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Conflict."


class AuthenticationError(AffiliateError):
    code = "authentication_failed"
    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials."


class PermissionDeniedError(AffiliateError):
    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Admin access required."


async def affiliate_error_handler(request: Request, exc: AffiliateError) -> JSONResponse:
    logger.info(
        f"Request rejected: {exc}",
        extra={"method": request.method, "path": request.url.path, "status_code": exc.http_status},
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload(), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "Something went wrong."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AffiliateError, affiliate_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
