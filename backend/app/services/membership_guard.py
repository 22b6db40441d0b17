"""
Membership authorization guard.

The single point where (user, workspace, minimum role) becomes an access
decision. Reads the store on every call and never mutates anything.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from app.core.exceptions import Forbidden, Unauthenticated
from app.models.member import Removed, WorkspaceMember, WorkspaceRole
from app.services.membership_store import MembershipStore

logger = logging.getLogger(__name__)


class AccessDecision(str, enum.Enum):
    allowed = "allowed"
    forbidden = "forbidden"
    unauthenticated = "unauthenticated"


@dataclass(frozen=True)
class AccessStatus:
    """Membership standing of one user in one workspace."""

    exists: bool
    active: bool
    role: WorkspaceRole | None = None
    removed_at: datetime | None = None


class MembershipGuard:
    def __init__(self, store: MembershipStore) -> None:
        self.store = store

    async def check_access(self, user_id: UUID, workspace_id: UUID) -> AccessStatus:
        member = await self.store.find_membership(user_id, workspace_id)
        if member is None:
            return AccessStatus(exists=False, active=False)
        state = member.state
        if isinstance(state, Removed):
            return AccessStatus(exists=True, active=False, role=member.role, removed_at=state.at)
        return AccessStatus(exists=True, active=True, role=member.role)

    async def require_role(
        self, user_id: UUID | None, workspace_id: UUID, min_role: WorkspaceRole
    ) -> AccessDecision:
        decision, _ = await self._decide(user_id, workspace_id, min_role)
        return decision

    async def ensure_role(
        self, user_id: UUID | None, workspace_id: UUID, min_role: WorkspaceRole
    ) -> WorkspaceMember:
        """
        Like require_role, but raises on anything other than allowed.

        Returns the caller's active membership so services can reason about
        the actor's own role.
        """
        decision, member = await self._decide(user_id, workspace_id, min_role)
        if decision is AccessDecision.unauthenticated:
            raise Unauthenticated()
        if decision is AccessDecision.forbidden or member is None:
            logger.info(
                "Access denied user_id=%s workspace_id=%s min_role=%s",
                user_id,
                workspace_id,
                min_role.value,
            )
            raise Forbidden()
        return member

    async def _decide(
        self, user_id: UUID | None, workspace_id: UUID, min_role: WorkspaceRole
    ) -> tuple[AccessDecision, WorkspaceMember | None]:
        if user_id is None:
            return AccessDecision.unauthenticated, None
        member = await self.store.find_membership(user_id, workspace_id)
        if member is None or not member.is_active:
            return AccessDecision.forbidden, None
        if not member.role.satisfies(min_role):
            return AccessDecision.forbidden, None
        return AccessDecision.allowed, member
