# app/core/security.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.core.config import settings

# =====
# JWTs
# =====
# Tokens are minted by the identity service; this API only verifies them.
# create_access_token exists for local tooling and tests.

class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    *,
    subject: str,                # the user id (UUID as str)
    role: Optional[str] = None,  # "patient" | "provider" | "admin"
    expires_minutes: Optional[int] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a short-lived Bearer access token.
    """
    exp_minutes = expires_minutes or settings.ACCESS_EXPIRES_MIN
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "type": TokenType.ACCESS.value,
        "iat": int(_utcnow().timestamp()),
        "exp": int((_utcnow() + timedelta(minutes=exp_minutes)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if role:
        to_encode["role"] = role
    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)


class InvalidTokenError(Exception):
    """Raised when a token is missing/invalid/expired or claims are malformed."""


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises InvalidTokenError on failure.
    """
    if not token:
        raise InvalidTokenError("missing_token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        # JWTError covers expired signature, invalid signature, bad format, etc.
        raise InvalidTokenError("invalid_token") from exc

    # Minimal sanity checks on claims
    if "sub" not in payload or "type" not in payload:
        raise InvalidTokenError("invalid_claims")

    return payload


def is_access_token(payload: Dict[str, Any]) -> bool:
    return payload.get("type") == TokenType.ACCESS.value
