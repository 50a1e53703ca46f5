"""
Authentication middleware for verifying interviewer identity.

This middleware:
1. Extracts the Bearer token from the Authorization header
2. Verifies it and stores the identity in ``scope["auth"]``
3. Rejects invalid or expired tokens with 401

Requests without a token pass through untouched: candidate endpoints are
public, and protected routes enforce identity through
``api.dependencies.require_interviewer``.
"""

import json
import logging
from typing import Callable, Optional

import jwt
from fastapi import Request, status

from core.security import verify_jwt_token, JWTPayload

logger = logging.getLogger(__name__)

# Paths that never look at credentials
PUBLIC_PREFIXES = ("/health", "/ready", "/docs", "/redoc", "/openapi")


class AuthenticationError(Exception):
    """Base exception for authentication errors."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""
    pass


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""
    pass


class AuthenticationMiddleware:
    """Validates Bearer tokens and injects the identity into the request scope."""

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
    ):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            jwt_secret: Secret key for JWT verification
            jwt_algorithm: JWT signing algorithm
        """
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)

        if self._is_public_endpoint(request.url.path):
            await self.app(scope, receive, send)
            return

        token = self._extract_token(request)
        if token:
            try:
                scope["auth"] = self._verify(token)
            except TokenExpiredError:
                await self._send_error_response(
                    scope,
                    send,
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    code="TOKEN_EXPIRED",
                    message="Authentication token has expired. Please log in again.",
                )
                return
            except TokenInvalidError as e:
                logger.warning(f"Invalid token: {str(e)}")
                await self._send_error_response(
                    scope,
                    send,
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    code="TOKEN_INVALID",
                    message="Invalid authentication token.",
                )
                return

        await self.app(scope, receive, send)

    def _verify(self, token: str) -> JWTPayload:
        try:
            return verify_jwt_token(token, self.jwt_secret, self.jwt_algorithm)
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(str(e))

    def _is_public_endpoint(self, path: str) -> bool:
        return path == "/" or path.startswith(PUBLIC_PREFIXES)

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract JWT token from Authorization header.

        Args:
            request: FastAPI request

        Returns:
            JWT token or None
        """
        auth_header = request.headers.get("Authorization")

        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:].strip() or None

        return None

    async def _send_error_response(
        self,
        scope: dict,
        send: Callable,
        status_code: int,
        code: str,
        message: str,
    ) -> None:
        body = json.dumps({
            "error": {
                "code": code,
                "message": message,
                "path": scope.get("path", "unknown"),
                "method": scope.get("method", "unknown"),
            }
        }).encode()

        await send({
            "type": "http.response.start",
            "status": status_code,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
                (b"www-authenticate", b"Bearer"),
            ],
        })
        await send({"type": "http.response.body", "body": body})


def get_current_identity(request: Request) -> Optional[JWTPayload]:
    """Identity attached by AuthenticationMiddleware, if any."""
    return request.scope.get("auth")
