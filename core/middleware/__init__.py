"""
Core middleware package.

This package provides the middleware components of the API:
- Error handling with sensitive data sanitization
- Structured logging with token and PII masking
- Bearer token authentication for interviewer endpoints
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    AuthenticationError,
    get_current_identity,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Authentication
    "AuthenticationMiddleware",
    "AuthenticationError",
    "get_current_identity",
]
