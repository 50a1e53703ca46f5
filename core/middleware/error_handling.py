"""
Error boundary of the API.

Domain, framework and infrastructure failures are mapped to one JSON
envelope. Messages are scrubbed of credentials and presigned URL
signatures before they are logged or returned.
"""

import logging
import re
import traceback
from typing import Any, Callable, Optional

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError

from core.errors import InterviewServiceError

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'X-Amz-Signature=[^&\s]+', re.IGNORECASE),
]

# Checked in order; subclasses before their bases
INFRASTRUCTURE_ERRORS = (
    (IntegrityError, status.HTTP_409_CONFLICT, "INTEGRITY_ERROR", "Database integrity constraint violated"),
    (OperationalError, status.HTTP_503_SERVICE_UNAVAILABLE, "DATABASE_ERROR", "Database service temporarily unavailable"),
    (SQLAlchemyError, status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR", "A database error occurred"),
    (TimeoutError, status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT", "The request timed out"),
)


def sanitize_error_message(message: Any) -> str:
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """Type and scrubbed message of ``exc``, plus the traceback when ``include_details``."""
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }
    if include_details:
        details["traceback"] = traceback.format_exc()
    return details


def build_error_body(
    code: str,
    message: str,
    path: str,
    method: str,
    details: Optional[Any] = None,
) -> dict[str, Any]:
    body = {
        "error": {
            "code": code,
            "message": message,
            "path": path,
            "method": method,
        }
    }
    if details is not None:
        body["error"]["details"] = details
    return body


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    Flatten pydantic errors to ``{field, message, type[, input]}``.

    Scalar inputs are echoed back unless they look like a credential.
    """
    errors = []
    for error in exc.errors():
        entry = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }
        value = error.get("input")
        if isinstance(value, (str, int, float, bool)) and not any(
            pattern.search(str(value)) for pattern in SENSITIVE_PATTERNS
        ):
            entry["input"] = value
        errors.append(entry)
    return errors


class ErrorHandlingMiddleware:
    """
    Outermost error boundary, written as plain ASGI.

    Once ``http.response.start`` has been sent (a video stream failing
    midway, for instance) the error is logged and re-raised so the server
    drops the connection instead of appending JSON to a partial body.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            if response_started:
                # Headers and part of the body are on the wire; a JSON error
                # body here would corrupt the response. Drop the connection.
                logger.error(
                    f"Error after response started: {scope.get('method')} {scope.get('path')} - "
                    f"{type(exc).__name__}: {sanitize_error_message(str(exc))}"
                )
                raise
            response = await self._handle_exception(exc, scope)
            await response(scope, receive, send)

    def _classify(self, exc: Exception, method: str, path: str) -> tuple[int, str, str, Optional[Any]]:
        """(status, code, message, details) for ``exc``; logs at the matching level."""
        if isinstance(exc, InterviewServiceError):
            message = sanitize_error_message(exc.message)
            log = logger.error if exc.status_code >= 500 else logger.warning
            log(f"{type(exc).__name__}: {method} {path} - {message}")
            return exc.status_code, exc.code, message, None

        if isinstance(exc, StarletteHTTPException):
            message = sanitize_error_message(exc.detail)
            logger.warning(f"HTTP {exc.status_code}: {method} {path} - {message}")
            return exc.status_code, "HTTP_EXCEPTION", message, None

        if isinstance(exc, RequestValidationError):
            details = format_validation_errors(exc)
            logger.warning(f"Validation error: {method} {path} - {details}")
            return status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Request validation failed", details

        for exc_type, status_code, code, message in INFRASTRUCTURE_ERRORS:
            if isinstance(exc, exc_type):
                logger.error(f"{type(exc).__name__}: {method} {path}", exc_info=True)
                break
        else:
            status_code, code, message = (
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "INTERNAL_SERVER_ERROR",
                "An unexpected error occurred",
            )
            logger.error(
                f"Unhandled exception: {method} {path} - "
                f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
                exc_info=True,
            )

        details = get_safe_error_details(exc, include_details=True) if self.debug else None
        return status_code, code, message, details

    async def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        path = scope.get("path", "unknown")
        method = scope.get("method", "unknown")

        status_code, code, message, details = self._classify(exc, method, path)
        body = build_error_body(code, message, path, method, details)

        request_id = dict(scope.get("headers") or []).get(b"x-request-id")
        if request_id:
            body["error"]["request_id"] = request_id.decode()

        return JSONResponse(status_code=status_code, content=body)


def setup_error_handlers(app):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(InterviewServiceError)
    async def domain_exception_handler(request: Request, exc: InterviewServiceError):
        """Handle domain errors raised by the services."""
        message = sanitize_error_message(exc.message)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(f"{type(exc).__name__}: {request.method} {request.url.path} - {message}")

        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_body(
                exc.code, message, str(request.url.path), request.method
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_body(
                "HTTP_EXCEPTION",
                sanitize_error_message(exc.detail),
                str(request.url.path),
                request.method,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                str(request.url.path),
                request.method,
                format_validation_errors(exc),
            ),
        )
