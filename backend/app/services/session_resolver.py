"""
Session resolution.

Maps a raw session credential to a UserIdentity, or None. Callers never
learn why a credential failed: expired, tampered, revoked and unknown all
look the same.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

import redis.asyncio as aioredis
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import UserIdentity
from app.core.security import decode_session_token, revoked_session_redis_key
from app.models.user import User

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Validates an opaque credential against the identity subsystem."""

    async def validate_credential(self, raw: str) -> UserIdentity | None: ...


class TokenIdentityProvider:
    """
    Identity subsystem backed by signed session tokens.

    A credential is valid when the signature and expiry check out, the token
    is of type "session", its jti is not on the Redis revocation list, and
    the user exists and is active.
    """

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    async def validate_credential(self, raw: str) -> UserIdentity | None:
        try:
            payload = decode_session_token(raw)
        except JWTError:
            return None

        try:
            user_id = UUID(str(payload.get("sub", "")))
        except ValueError:
            return None

        jti = payload.get("jti")
        if not jti:
            return None
        if await self.redis.exists(revoked_session_redis_key(jti)):
            return None

        user = await self.db.get(User, user_id)
        if user is None or not user.is_active:
            return None

        return UserIdentity(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
        )


class SessionResolver:
    """Resolves the caller's identity for one request."""

    def __init__(self, provider: IdentityProvider) -> None:
        self.provider = provider

    async def resolve(self, credential: str | None) -> UserIdentity | None:
        """
        Return the identity behind `credential`, or None.

        A missing or blank credential short-circuits without touching the
        provider. Infrastructure errors from the provider propagate.
        """
        if credential is None or not credential.strip():
            return None
        identity = await self.provider.validate_credential(credential.strip())
        if identity is None:
            logger.debug("Session credential rejected")
        return identity
