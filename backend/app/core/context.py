"""
Request-scoped identity and workspace context.

Resolved once per request and passed by value into services.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserIdentity:
    """The authenticated caller, as returned by the identity subsystem."""

    id: UUID
    email: str
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class RequestContext:
    """Caller identity plus the single workspace bound to this request."""

    identity: UserIdentity
    workspace_id: UUID | None
    request_id: str

    @property
    def user_id(self) -> UUID:
        return self.identity.id
