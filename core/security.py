"""
JWT helpers for interviewer authentication.

Tokens are issued by the identity provider in front of this service; the
API only verifies them. ``create_access_token`` exists for tooling and tests.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from core.config import settings


@dataclass(frozen=True)
class JWTPayload:
    """Identity carried by a verified access token."""

    subject: str
    email: str
    name: Optional[str] = None


def create_access_token(
    subject: str | int,
    email: str,
    name: Optional[str] = None,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        subject: Stable identifier of the user at the identity provider
        email: Interviewer email
        name: Display name, used to backfill the interviewer record
        secret_key: Signing key (defaults to JWT_SECRET_KEY)
        algorithm: Signing algorithm (defaults to JWT_ALGORITHM)
        expires_minutes: Lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": str(subject),
        "email": email,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=lifetime),
        "jti": uuid.uuid4().hex,
    }
    if name:
        payload["name"] = name

    return jwt.encode(
        payload,
        secret_key or settings.jwt_secret_key,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def verify_jwt_token(
    token: str,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> JWTPayload:
    """
    Verify an access token and extract the identity.

    Args:
        token: Encoded JWT
        secret_key: Verification key (defaults to JWT_SECRET_KEY)
        algorithm: Expected algorithm (defaults to JWT_ALGORITHM)

    Returns:
        JWTPayload of the token

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed or lacks an email
    """
    claims = jwt.decode(
        token,
        secret_key or settings.jwt_secret_key,
        algorithms=[algorithm or settings.jwt_algorithm],
        options={"require": ["exp", "sub"]},
    )

    if claims.get("type", "access") != "access":
        raise jwt.InvalidTokenError("Not an access token")

    email = claims.get("email")
    if not email:
        raise jwt.InvalidTokenError("Token carries no email")

    return JWTPayload(subject=str(claims["sub"]), email=email, name=claims.get("name"))
