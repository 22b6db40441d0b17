"""
Security utilities.

Password hashing and session token creation/validation.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt as _bcrypt
from jose import JWTError, jwt

from app.core.config import settings

SESSION_TOKEN_TYPE = "session"


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    password_bytes = password.encode("utf-8")[:72]
    salt = _bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return _bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    return _bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------

def create_session_token(user_id: str, jti: str | None = None) -> tuple[str, str]:
    """
    Create a signed session token.

    Args:
        user_id: The user's UUID as string.
        jti: Optional token ID. Generated if not provided.

    Returns:
        Tuple of (encoded_token, jti) so the jti can be revoked on logout.
    """
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
    jti = jti or str(uuid.uuid4())
    payload: dict[str, Any] = {
        "sub": user_id,
        "jti": jti,
        "type": SESSION_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, jti


def decode_session_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        JWTError: If the token is invalid, expired, tampered, or not a session token.
    """
    payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise JWTError("Not a session token")
    return payload


# ---------------------------------------------------------------------------
# Redis key helpers
# ---------------------------------------------------------------------------

def revoked_session_redis_key(jti: str) -> str:
    """Redis key for a revoked session token JTI. Format: revoked_session:{jti}"""
    return f"revoked_session:{jti}"
