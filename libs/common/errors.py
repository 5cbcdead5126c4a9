"""Error taxonomy and FastAPI exception handlers.

Every error response has the same shape::

    {
        "success": false,
        "error": {"code": "VALIDATION_ERROR", "message": "...", "details": ...},
        "timestamp": "2025-01-15T10:00:00+00:00"
    }
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """Base class for errors surfaced to API callers with a stable code."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(message)


class InvalidRequestError(StoreError):
    """Malformed or missing input, or a business rule rejected the request."""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(StoreError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStockError(StoreError):
    code = "INSUFFICIENT_STOCK"
    status_code = status.HTTP_409_CONFLICT


class InvalidSignatureError(StoreError):
    code = "INVALID_SIGNATURE"
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentNotCapturedError(StoreError):
    code = "PAYMENT_NOT_CAPTURED"
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(StoreError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(StoreError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class ConfigurationError(StoreError):
    code = "CONFIGURATION_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class PaymentGatewayError(StoreError):
    code = "PAYMENT_GATEWAY_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


_HTTP_STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


def error_payload(code: str, message: str, details: Any = None) -> dict:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "timestamp": utc_now().isoformat(),
    }


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(error_payload(code, message, details)),
        headers=headers,
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            exc.code,
            request.method,
            request.url.path,
            exc.message,
        )
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, "INTERNAL_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = None if isinstance(exc.detail, str) else exc.detail
    return error_response(
        exc.status_code, code, message, details, headers=getattr(exc, "headers", None)
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Invalid request",
        details=exc.errors(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "Internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the structured error handlers on an app."""
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
