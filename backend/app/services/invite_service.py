"""
Invite lifecycle business logic.

An invite is Pending while its row exists. Accept, cancel and expiry all
end in a hard delete of the row; accept additionally upserts the
membership in the same transaction.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.context import UserIdentity
from app.core.exceptions import Conflict, Forbidden, InviteExpired, NotFound
from app.models.base import utcnow
from app.models.invitation import WorkspaceInvite
from app.models.member import WorkspaceRole
from app.models.notification import NotificationType
from app.schemas.notification import NotificationCreate
from app.schemas.workspace import (
    InvitationResponse,
    InvitationsListResponse,
    InviteAcceptResponse,
    InvitePreviewResponse,
    InviterResponse,
    WorkspaceResponse,
)
from app.services.membership_guard import MembershipGuard
from app.services.membership_store import MembershipStore
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _invite_not_found() -> NotFound:
    return NotFound("Invite not found", code="INVITE_NOT_FOUND")


def _to_response(invite: WorkspaceInvite) -> InvitationResponse:
    return InvitationResponse(
        id=invite.id,
        workspace_id=invite.workspace_id,
        email=invite.email,
        role=invite.role.value,
        token=invite.token,
        invite_url=f"{settings.FRONTEND_URL}/invite/{invite.token}",
        created_by=invite.created_by,
        created_at=invite.created_at,
        expires_at=invite.expires_at,
    )


class InviteService:
    """Create, list, cancel, preview and accept workspace invites."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.store = MembershipStore(db)
        self.guard = MembershipGuard(self.store)
        self.notifications = NotificationService(db)

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create_invite(
        self,
        actor: UserIdentity,
        workspace_id: UUID,
        email: str,
        role: WorkspaceRole = WorkspaceRole.member,
    ) -> InvitationResponse:
        """
        Invite `email` to the workspace with `role`.

        - Actor must be admin or owner, and may not grant a role above their own
        - Existing active members are rejected with 409
        - A second pending invite for the same email is rejected with 409;
          an expired one is cleared out first
        """
        actor_member = await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.admin)
        if role > actor_member.role:
            raise Forbidden()

        email = email.strip().lower()

        invitee = await self.store.find_user_by_email(email)
        if invitee is not None:
            member = await self.store.find_membership(invitee.id, workspace_id)
            if member is not None and member.is_active:
                raise Conflict(
                    "User is already a member of this workspace", code="ALREADY_MEMBER"
                )

        now = utcnow()
        existing = await self.store.find_pending_invite(workspace_id, email)
        if existing is not None:
            if not existing.is_expired(now):
                raise Conflict(
                    "An invite has already been sent to this email", code="INVITE_EXISTS"
                )
            await self.store.delete_invite(workspace_id, existing.id)

        invite = await self.store.create_invite(
            workspace_id=workspace_id,
            email=email,
            role=role,
            token=secrets.token_urlsafe(32),
            created_by=actor.id,
            expires_at=now + timedelta(days=settings.INVITE_EXPIRE_DAYS),
        )

        if invitee is not None:
            workspace = await self.store.get_workspace(workspace_id)
            await self.notifications.create(
                NotificationCreate(
                    workspace_id=workspace_id,
                    user_id=invitee.id,
                    type=NotificationType.WORKSPACE_INVITE,
                    title="Workspace Invitation",
                    body=f"{actor.display_name} invited you to join {workspace.name}",
                    entity_type="invite",
                    entity_id=invite.id,
                )
            )

        logger.info(
            "Invite created invite_id=%s workspace_id=%s actor_id=%s role=%s",
            invite.id,
            workspace_id,
            actor.id,
            role.value,
        )
        return _to_response(invite)

    # -----------------------------------------------------------------------
    # List / cancel
    # -----------------------------------------------------------------------

    async def list_invites(self, actor: UserIdentity, workspace_id: UUID) -> InvitationsListResponse:
        await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.admin)
        invites = await self.store.list_invites(workspace_id, utcnow())
        return InvitationsListResponse(
            invitations=[_to_response(invite) for invite in invites],
            total=len(invites),
        )

    async def cancel_invite(self, actor: UserIdentity, workspace_id: UUID, invite_id: UUID) -> None:
        """
        Delete a pending invite.

        Scoped by (workspace_id, invite_id): an id that belongs to another
        workspace gets the same 404 as one that never existed.
        """
        await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.admin)
        invite = await self.store.find_invite(workspace_id, invite_id)
        if invite is None:
            raise _invite_not_found()
        role = invite.role

        # Lost to a concurrent accept or cancel.
        if not await self.store.delete_invite(workspace_id, invite_id):
            raise _invite_not_found()
        logger.info(
            "Invite cancelled invite_id=%s workspace_id=%s actor_id=%s role=%s",
            invite_id,
            workspace_id,
            actor.id,
            role.value,
        )

    # -----------------------------------------------------------------------
    # Preview (public)
    # -----------------------------------------------------------------------

    async def get_invite_preview(self, token: str) -> InvitePreviewResponse:
        invite = await self.store.find_invite_by_token(token)
        if invite is None:
            raise _invite_not_found()
        if invite.is_expired():
            raise InviteExpired()

        workspace = await self.store.get_workspace(invite.workspace_id)
        inviter = await self.store.find_user(invite.created_by)
        return InvitePreviewResponse(
            id=invite.id,
            workspace_id=invite.workspace_id,
            workspace_name=workspace.name,
            invited_by=(
                InviterResponse(id=inviter.id, email=inviter.email, display_name=inviter.display_name)
                if inviter is not None
                else None
            ),
            email=invite.email,
            role=invite.role.value,
            expires_at=invite.expires_at,
        )

    # -----------------------------------------------------------------------
    # Accept
    # -----------------------------------------------------------------------

    async def accept_invite_by_token(self, invitee: UserIdentity, token: str) -> InviteAcceptResponse:
        invite = await self.store.find_invite_by_token(token)
        if invite is None:
            raise _invite_not_found()
        return await self._accept(invitee, invite)

    async def accept_invite(self, invitee: UserIdentity, invite_id: UUID) -> InviteAcceptResponse:
        invite = await self.store.get_invite(invite_id)
        if invite is None:
            raise _invite_not_found()
        return await self._accept(invitee, invite)

    async def _accept(self, invitee: UserIdentity, invite: WorkspaceInvite) -> InviteAcceptResponse:
        invite_id = invite.id
        workspace_id = invite.workspace_id
        role = invite.role
        inviter_id = invite.created_by

        if invite.is_expired():
            await self.store.delete_invite(workspace_id, invite_id)
            # Persist the reap before the error unwinds the request transaction.
            await self.db.commit()
            logger.info("Expired invite discarded invite_id=%s", invite_id)
            raise InviteExpired()

        if invitee.email.lower() != invite.email:
            raise Forbidden(
                "This invite was sent to a different email address", code="EMAIL_MISMATCH"
            )

        # Whoever deletes the row owns the acceptance.
        if not await self.store.delete_invite(workspace_id, invite_id):
            raise _invite_not_found()

        existing = await self.store.find_membership(invitee.id, workspace_id)
        already_member = existing is not None and existing.is_active
        await self.store.upsert_membership(invitee.id, workspace_id, role)

        workspace = await self.store.get_workspace(workspace_id)

        if not already_member and inviter_id != invitee.id:
            inviter_member = await self.store.find_membership(inviter_id, workspace_id)
            if inviter_member is not None and inviter_member.is_active:
                await self.notifications.create(
                    NotificationCreate(
                        workspace_id=workspace_id,
                        user_id=inviter_id,
                        type=NotificationType.INVITE_ACCEPTED,
                        title="Invitation Accepted",
                        body=f"{invitee.display_name} has joined {workspace.name}",
                        entity_type="invite",
                        entity_id=invite_id,
                    )
                )

        logger.info(
            "Invite accepted invite_id=%s workspace_id=%s user_id=%s",
            invite_id,
            workspace_id,
            invitee.id,
        )
        message = (
            f"You are already a member of {workspace.name}"
            if already_member
            else f"Successfully joined {workspace.name}"
        )
        return InviteAcceptResponse(
            workspace=WorkspaceResponse.model_validate(workspace),
            message=message,
        )
