"""
Route access gate.

Cheap presence check on every request before any handler runs. It only
looks for a session credential; validating it is the job of the identity
dependencies. Also strips client-supplied copies of internal identity
headers so nothing downstream can be spoofed through them.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from app.core.config import settings

logger = logging.getLogger(__name__)

INTERNAL_HEADERS = frozenset(
    {
        b"x-user-id",
        b"x-user-email",
        b"x-session-id",
        b"x-resolved-workspace-id",
    }
)


def is_public_path(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in settings.PUBLIC_PATH_PREFIXES)


def has_session_credential(request: Request) -> bool:
    """True if a non-empty bearer token or session cookie is present."""
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return True
    return bool(request.cookies.get(settings.SESSION_COOKIE_NAME, "").strip())


class RouteAccessGate(BaseHTTPMiddleware):
    """
    Public paths always pass. Otherwise a request without a credential is
    redirected to the sign-in page, except API paths, which fall through
    to the handler's own 401.
    """

    async def dispatch(self, request, call_next):
        request.scope["headers"] = [
            (name, value)
            for name, value in request.scope["headers"]
            if name.lower() not in INTERNAL_HEADERS
        ]

        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id

        path = request.url.path
        if (
            not is_public_path(path)
            and not has_session_credential(request)
            and not path.startswith(settings.API_PATH_PREFIX)
        ):
            logger.debug("Redirecting unauthenticated request path=%s", path)
            response = RedirectResponse(settings.SIGNIN_PATH, status_code=307)
        else:
            response = await call_next(request)

        response.headers["X-Request-Id"] = request_id
        return response
