"""
Authentication endpoints.

Register, login, logout, me and the session snapshot.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

import redis.asyncio as aioredis

from app.core.config import settings
from app.core.context import RequestContext, UserIdentity
from app.core.database import get_db
from app.core.dependencies import (
    extract_credential,
    get_current_identity,
    get_optional_request_context,
    get_redis,
)
from app.schemas.auth import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    SessionResponse,
    TokenResponse,
)
from app.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> AuthService:
    """Dependency that constructs AuthService."""
    return AuthService(db=db, redis=redis)


def _set_session_cookie(response: Response, token: TokenResponse) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token.access_token,
        max_age=token.expires_in,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    data: RegisterRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Create a new user account and a personal workspace.

    - Email must be globally unique
    - Password must be min 8 chars and contain at least 1 number
    - Returns a session token and sets the session cookie
    """
    token = await service.register(data)
    _set_session_cookie(response, token)
    return token


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
)
async def login(
    data: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    token = await service.login(data)
    _set_session_cookie(response, token)
    return token


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="Logout and revoke the session",
)
async def logout(
    response: Response,
    credential: str | None = Depends(extract_credential),
    _: UserIdentity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> dict[str, bool]:
    """
    Revoke the current session token and clear the session and workspace
    cookies.
    """
    await service.logout(credential or "")
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    response.delete_cookie(settings.WORKSPACE_COOKIE_NAME)
    return {"success": True}


# ---------------------------------------------------------------------------
# Me / session
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user profile",
)
async def me(
    identity: UserIdentity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> MeResponse:
    return await service.get_me(identity.id)


@router.get(
    "/session",
    response_model=SessionResponse | None,
    summary="Current user and workspace, or null",
)
async def session(
    ctx: RequestContext | None = Depends(get_optional_request_context),
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse | None:
    """Never 401s: a caller who is not signed in gets null."""
    if ctx is None:
        return None
    return await service.get_session(ctx.identity, ctx.workspace_id)
