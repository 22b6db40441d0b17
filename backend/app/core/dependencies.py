"""
FastAPI dependency injection functions.

Provides Redis connections, the caller's identity and the per-request
workspace context.
"""

from __future__ import annotations

import uuid
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.context import RequestContext, UserIdentity
from app.core.database import get_db
from app.core.exceptions import Unauthenticated
from app.services.membership_store import MembershipStore
from app.services.session_resolver import SessionResolver, TokenIdentityProvider
from app.services.workspace_binder import WorkspaceContextBinder

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def extract_credential(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


def get_session_resolver(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> SessionResolver:
    return SessionResolver(TokenIdentityProvider(db=db, redis=redis))


async def get_optional_identity(
    request: Request,
    credential: str | None = Depends(extract_credential),
    resolver: SessionResolver = Depends(get_session_resolver),
) -> UserIdentity | None:
    """Resolved caller, or None. Used where "not signed in" is a normal answer."""
    identity = await resolver.resolve(credential)
    request.state.identity = identity
    return identity


async def get_current_identity(
    identity: UserIdentity | None = Depends(get_optional_identity),
) -> UserIdentity:
    """
    Return the authenticated caller.

    Raises 401 if the credential is missing, invalid, expired, revoked or
    belongs to an unknown or inactive user.
    """
    if identity is None:
        raise Unauthenticated()
    return identity


# ---------------------------------------------------------------------------
# Workspace context
# ---------------------------------------------------------------------------

def get_explicit_workspace_id(request: Request) -> UUID | None:
    """
    Workspace the client asked for, header before cookie.

    Unparsable values are ignored. The binder still verifies membership.
    """
    raw = request.headers.get(settings.WORKSPACE_HEADER_NAME) or request.cookies.get(
        settings.WORKSPACE_COOKIE_NAME
    )
    if not raw:
        return None
    try:
        return UUID(raw.strip())
    except ValueError:
        return None


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


async def _bind(
    request: Request, identity: UserIdentity, explicit: UUID | None, db: AsyncSession
) -> RequestContext:
    workspace_id = await WorkspaceContextBinder(MembershipStore(db)).bind(identity.id, explicit)
    request.state.workspace_id = workspace_id
    return RequestContext(
        identity=identity,
        workspace_id=workspace_id,
        request_id=_request_id(request),
    )


async def get_request_context(
    request: Request,
    identity: UserIdentity = Depends(get_current_identity),
    explicit_workspace_id: UUID | None = Depends(get_explicit_workspace_id),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Identity plus bound workspace. 401 when unidentified."""
    return await _bind(request, identity, explicit_workspace_id, db)


async def get_optional_request_context(
    request: Request,
    identity: UserIdentity | None = Depends(get_optional_identity),
    explicit_workspace_id: UUID | None = Depends(get_explicit_workspace_id),
    db: AsyncSession = Depends(get_db),
) -> RequestContext | None:
    if identity is None:
        return None
    return await _bind(request, identity, explicit_workspace_id, db)
