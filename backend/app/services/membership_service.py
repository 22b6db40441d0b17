"""
Workspace membership business logic.

Listing members, inspecting a member's standing, removing (or leaving) and
changing roles. Removal is a soft delete; the row stays for audit and can be
reactivated by a later invite.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import UserIdentity
from app.core.exceptions import Forbidden, InvalidOperation, NotFound
from app.models.base import ensure_utc
from app.models.member import WorkspaceMember, WorkspaceRole
from app.models.notification import NotificationType
from app.schemas.notification import NotificationCreate
from app.schemas.workspace import MemberResponse, MembersListResponse, MemberStatusResponse
from app.services.membership_guard import MembershipGuard
from app.services.membership_store import MembershipStore
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _member_not_found() -> NotFound:
    return NotFound("Member not found", code="MEMBER_NOT_FOUND")


class MembershipService:
    """Handles member management within a workspace."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.store = MembershipStore(db)
        self.guard = MembershipGuard(self.store)
        self.notifications = NotificationService(db)

    async def list_members(self, actor: UserIdentity, workspace_id: UUID) -> MembersListResponse:
        """Active members ordered owner, admin, member, then by join date."""
        actor_member = await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.member)

        rows = await self.store.list_active_members(workspace_id)
        rows.sort(key=lambda row: (-row[0].role.rank, ensure_utc(row[0].joined_at)))

        members = [
            MemberResponse(
                id=member.id,
                user_id=user.id,
                email=user.email,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
                role=member.role.value,
                joined_at=member.joined_at,
            )
            for member, user in rows
        ]
        return MembersListResponse(
            members=members,
            total=len(members),
            current_user_role=actor_member.role.value,
        )

    async def get_member_status(
        self, actor: UserIdentity, workspace_id: UUID, target_user_id: UUID
    ) -> MemberStatusResponse:
        await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.member)
        status = await self.guard.check_access(target_user_id, workspace_id)
        return MemberStatusResponse(
            exists=status.exists,
            is_active=status.active,
            is_removed=status.exists and not status.active,
            role=status.role.value if status.role is not None else None,
            removed_at=status.removed_at,
        )

    async def remove_member(
        self, actor: UserIdentity, workspace_id: UUID, target_user_id: UUID
    ) -> None:
        """
        Soft-delete a membership.

        Removing yourself is leaving: any member may leave except the owner.
        Removing someone else needs admin; the owner can never be removed and
        admins cannot remove other admins.
        """
        if target_user_id == actor.id:
            member = await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.member)
            if member.role is WorkspaceRole.owner:
                raise InvalidOperation(
                    "The workspace owner cannot leave the workspace", code="OWNER_CANNOT_LEAVE"
                )
            await self._soft_delete(target_user_id, workspace_id, removed_by_id=actor.id)
            logger.info("Member left workspace_id=%s user_id=%s", workspace_id, actor.id)
            return

        actor_member = await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.admin)
        target = await self._active_target(target_user_id, workspace_id)
        self._check_can_manage(actor_member, target)

        await self._soft_delete(target_user_id, workspace_id, removed_by_id=actor.id)

        workspace = await self.store.get_workspace(workspace_id)
        await self.notifications.create(
            NotificationCreate(
                workspace_id=workspace_id,
                user_id=target_user_id,
                type=NotificationType.REMOVED_FROM_WORKSPACE,
                title="Removed from workspace",
                body=f"You were removed from {workspace.name}",
                entity_type="workspace",
                entity_id=workspace_id,
            )
        )
        logger.info(
            "Member removed workspace_id=%s user_id=%s actor_id=%s",
            workspace_id,
            target_user_id,
            actor.id,
        )

    async def update_member_role(
        self,
        actor: UserIdentity,
        workspace_id: UUID,
        target_user_id: UUID,
        new_role: WorkspaceRole,
    ) -> MemberResponse:
        actor_member = await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.admin)
        target = await self._active_target(target_user_id, workspace_id)
        self._check_can_manage(actor_member, target)
        if new_role > actor_member.role:
            raise Forbidden()

        previous = target.role
        target.role = new_role
        await self.db.flush()

        user = await self.store.find_user(target_user_id)
        logger.info(
            "Member role changed workspace_id=%s user_id=%s from=%s to=%s actor_id=%s",
            workspace_id,
            target_user_id,
            previous.value,
            new_role.value,
            actor.id,
        )
        return MemberResponse(
            id=target.id,
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            role=target.role.value,
            joined_at=target.joined_at,
        )

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _active_target(self, user_id: UUID, workspace_id: UUID) -> WorkspaceMember:
        target = await self.store.find_membership(user_id, workspace_id)
        if target is None or not target.is_active:
            raise _member_not_found()
        return target

    @staticmethod
    def _check_can_manage(actor_member: WorkspaceMember, target: WorkspaceMember) -> None:
        if target.role is WorkspaceRole.owner:
            raise Forbidden()
        if actor_member.role is not WorkspaceRole.owner and target.role >= actor_member.role:
            raise Forbidden()

    async def _soft_delete(self, user_id: UUID, workspace_id: UUID, *, removed_by_id: UUID) -> None:
        if not await self.store.soft_delete_membership(user_id, workspace_id, removed_by_id):
            raise _member_not_found()
