"""
Workspace context binding.

Decides which single workspace a request operates in. An explicit choice
(header or cookie) is only honored after the caller's membership in it is
verified active; otherwise the earliest-joined active workspace is used.
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.services.membership_store import MembershipStore

logger = logging.getLogger(__name__)


class WorkspaceContextBinder:
    def __init__(self, store: MembershipStore) -> None:
        self.store = store

    async def bind(self, user_id: UUID, explicit_workspace_id: UUID | None = None) -> UUID | None:
        if explicit_workspace_id is not None:
            member = await self.store.find_membership(user_id, explicit_workspace_id)
            if member is not None and member.is_active:
                return explicit_workspace_id
            logger.info(
                "Ignoring workspace override user_id=%s workspace_id=%s",
                user_id,
                explicit_workspace_id,
            )

        memberships = await self.store.find_memberships_by_user(user_id, active_only=True)
        if not memberships:
            return None
        return memberships[0].workspace_id
