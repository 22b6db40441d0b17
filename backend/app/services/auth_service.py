"""
Authentication business logic.

Handles user registration, login, logout and the session snapshot.
All business logic lives here; routers only handle HTTP concerns.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

import redis.asyncio as aioredis
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.context import UserIdentity
from app.core.exceptions import Conflict, Forbidden, Unauthenticated
from app.core.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    revoked_session_redis_key,
    verify_password,
)
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    SessionResponse,
    SessionUser,
    SessionWorkspace,
    TokenResponse,
)
from app.services.membership_store import MembershipStore
from app.services.workspace_service import WorkspaceService

logger = logging.getLogger(__name__)


class AuthService:
    """Handles all authentication operations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis
        self.store = MembershipStore(db)

    # -----------------------------------------------------------------------
    # Register
    # -----------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> TokenResponse:
        """
        Register a new user.

        - Validates email uniqueness
        - Hashes password
        - Creates user record and a personal workspace owned by the user
        - Issues a session token
        """
        email = data.email.lower()
        if await self.store.find_user_by_email(email) is not None:
            raise Conflict("Email is already registered", code="EMAIL_TAKEN")

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            display_name=data.display_name,
        )
        self.db.add(user)
        await self.db.flush()  # Get user.id without committing

        await WorkspaceService(self.db).create_personal_workspace(user)

        logger.info("User registered user_id=%s", user.id)
        return self._issue_token(user)

    # -----------------------------------------------------------------------
    # Login
    # -----------------------------------------------------------------------

    async def login(self, data: LoginRequest) -> TokenResponse:
        """
        Authenticate user with email + password.

        Raises 401 for invalid credentials (never reveals which field is wrong).
        """
        user = await self.store.find_user_by_email(data.email)

        if user is None or user.password_hash is None:
            raise Unauthenticated("Invalid email or password", code="INVALID_CREDENTIALS")

        if not verify_password(data.password, user.password_hash):
            raise Unauthenticated("Invalid email or password", code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise Forbidden("Account is disabled", code="ACCOUNT_DISABLED")

        return self._issue_token(user)

    # -----------------------------------------------------------------------
    # Logout
    # -----------------------------------------------------------------------

    async def logout(self, token: str) -> None:
        """
        Revoke a session token by putting its JTI on the Redis revocation
        list until the token would have expired anyway.
        """
        try:
            payload = decode_session_token(token)
        except JWTError:
            # Already unusable
            return

        jti: str = payload.get("jti", "")
        if not jti:
            return

        exp = payload.get("exp")
        if exp is not None:
            ttl = int(exp - datetime.now(UTC).timestamp())
        else:
            ttl = settings.SESSION_EXPIRE_MINUTES * 60
        if ttl > 0:
            await self.redis.setex(revoked_session_redis_key(jti), ttl, "1")
        logger.info("Session revoked user_id=%s", payload.get("sub"))

    # -----------------------------------------------------------------------
    # Me / session
    # -----------------------------------------------------------------------

    async def get_me(self, user_id: UUID) -> MeResponse:
        """Return current user profile."""
        user = await self.store.find_user(user_id)
        if user is None:
            raise Unauthenticated()
        return MeResponse.model_validate(user)

    async def get_session(
        self, identity: UserIdentity, workspace_id: UUID | None
    ) -> SessionResponse:
        """Current user plus the workspace bound to this request, if any."""
        workspace = None
        if workspace_id is not None:
            ws = await self.store.get_workspace(workspace_id)
            member = await self.store.find_membership(identity.id, workspace_id)
            if ws is not None and member is not None and member.is_active:
                workspace = SessionWorkspace(
                    id=ws.id, name=ws.name, slug=ws.slug, role=member.role.value
                )
        return SessionResponse(
            user=SessionUser(
                id=identity.id,
                email=identity.email,
                display_name=identity.display_name,
                avatar_url=identity.avatar_url,
            ),
            workspace=workspace,
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _issue_token(self, user: User) -> TokenResponse:
        token, _ = create_session_token(str(user.id))
        return TokenResponse(
            access_token=token,
            expires_in=settings.SESSION_EXPIRE_MINUTES * 60,
        )
