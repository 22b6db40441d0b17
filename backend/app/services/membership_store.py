"""
Membership store.

Persistence for memberships and invites. The only component that reads or
writes workspace_members / workspace_invites rows; callers get ORM objects
back and go through the methods below for every mutation.

Nothing here is cached between requests: role and removal changes must be
visible on the very next call.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict
from app.models.base import utcnow
from app.models.invitation import WorkspaceInvite
from app.models.member import WorkspaceMember, WorkspaceRole
from app.models.user import User
from app.models.workspace import Workspace


class MembershipStore:
    """Async data access for memberships, invites and the rows they point at."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Memberships
    # -----------------------------------------------------------------------

    async def find_membership(
        self, user_id: UUID, workspace_id: UUID, *, for_update: bool = False
    ) -> WorkspaceMember | None:
        stmt = select(WorkspaceMember).where(
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.workspace_id == workspace_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_memberships_by_user(
        self, user_id: UUID, *, active_only: bool = False
    ) -> list[WorkspaceMember]:
        """All memberships of a user, oldest first."""
        stmt = select(WorkspaceMember).where(WorkspaceMember.user_id == user_id)
        if active_only:
            stmt = stmt.where(WorkspaceMember.removed_at.is_(None))
        result = await self.db.execute(stmt.order_by(WorkspaceMember.joined_at))
        return list(result.scalars().all())

    async def list_user_workspaces(self, user_id: UUID) -> list[tuple[Workspace, WorkspaceMember]]:
        result = await self.db.execute(
            select(Workspace, WorkspaceMember)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(
                WorkspaceMember.user_id == user_id,
                WorkspaceMember.removed_at.is_(None),
            )
            .order_by(WorkspaceMember.joined_at)
        )
        return [(workspace, member) for workspace, member in result.all()]

    async def list_active_members(self, workspace_id: UUID) -> list[tuple[WorkspaceMember, User]]:
        result = await self.db.execute(
            select(WorkspaceMember, User)
            .join(User, WorkspaceMember.user_id == User.id)
            .where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.removed_at.is_(None),
            )
            .order_by(WorkspaceMember.joined_at)
        )
        return [(member, user) for member, user in result.all()]

    async def active_member_ids(self, workspace_id: UUID, user_ids: Iterable[UUID]) -> set[UUID]:
        """Subset of user_ids holding an active membership in the workspace."""
        candidates = set(user_ids)
        if not candidates:
            return set()
        result = await self.db.execute(
            select(WorkspaceMember.user_id).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id.in_(candidates),
                WorkspaceMember.removed_at.is_(None),
            )
        )
        return set(result.scalars().all())

    async def add_membership(
        self, user_id: UUID, workspace_id: UUID, role: WorkspaceRole
    ) -> WorkspaceMember:
        member = WorkspaceMember(user_id=user_id, workspace_id=workspace_id, role=role)
        self.db.add(member)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict(
                "User is already a member of this workspace", code="ALREADY_MEMBER"
            ) from None
        return member

    async def upsert_membership(
        self, user_id: UUID, workspace_id: UUID, role: WorkspaceRole
    ) -> WorkspaceMember:
        """
        Create the membership, or reactivate the removed row.

        An already-active row is returned unchanged. The
        (user_id, workspace_id) unique constraint turns a lost insert race
        into Conflict.
        """
        member = await self.find_membership(user_id, workspace_id, for_update=True)
        if member is None:
            return await self.add_membership(user_id, workspace_id, role)
        if not member.is_active:
            member.reactivate(role)
            await self.db.flush()
        return member

    async def soft_delete_membership(
        self, user_id: UUID, workspace_id: UUID, removed_by_id: UUID
    ) -> bool:
        """Set removed_at on an active row. False when nothing was active."""
        result = await self.db.execute(
            update(WorkspaceMember)
            .where(
                WorkspaceMember.user_id == user_id,
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.removed_at.is_(None),
            )
            .values(removed_at=utcnow(), removed_by_id=removed_by_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    # -----------------------------------------------------------------------
    # Invites
    # -----------------------------------------------------------------------

    async def get_invite(self, invite_id: UUID) -> WorkspaceInvite | None:
        return await self.db.get(WorkspaceInvite, invite_id)

    async def find_invite(self, workspace_id: UUID, invite_id: UUID) -> WorkspaceInvite | None:
        result = await self.db.execute(
            select(WorkspaceInvite).where(
                WorkspaceInvite.id == invite_id,
                WorkspaceInvite.workspace_id == workspace_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_invite_by_token(self, token: str) -> WorkspaceInvite | None:
        result = await self.db.execute(
            select(WorkspaceInvite).where(WorkspaceInvite.token == token)
        )
        return result.scalar_one_or_none()

    async def find_pending_invite(self, workspace_id: UUID, email: str) -> WorkspaceInvite | None:
        result = await self.db.execute(
            select(WorkspaceInvite).where(
                WorkspaceInvite.workspace_id == workspace_id,
                WorkspaceInvite.email == email,
            )
        )
        return result.scalar_one_or_none()

    async def list_invites(self, workspace_id: UUID, now: datetime) -> list[WorkspaceInvite]:
        """Unexpired invites of a workspace, newest first."""
        result = await self.db.execute(
            select(WorkspaceInvite)
            .where(
                WorkspaceInvite.workspace_id == workspace_id,
                (WorkspaceInvite.expires_at.is_(None)) | (WorkspaceInvite.expires_at > now),
            )
            .order_by(WorkspaceInvite.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_invite(
        self,
        *,
        workspace_id: UUID,
        email: str,
        role: WorkspaceRole,
        token: str,
        created_by: UUID,
        expires_at: datetime | None,
    ) -> WorkspaceInvite:
        invite = WorkspaceInvite(
            workspace_id=workspace_id,
            email=email,
            role=role,
            token=token,
            created_by=created_by,
            created_at=utcnow(),
            expires_at=expires_at,
        )
        self.db.add(invite)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict(
                "An invite has already been sent to this email", code="INVITE_EXISTS"
            ) from None
        return invite

    async def delete_invite(self, workspace_id: UUID, invite_id: UUID) -> bool:
        """Delete by (workspace_id, invite_id). True only if a row was removed."""
        result = await self.db.execute(
            delete(WorkspaceInvite)
            .where(
                WorkspaceInvite.id == invite_id,
                WorkspaceInvite.workspace_id == workspace_id,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    async def delete_expired_invites(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(WorkspaceInvite)
            .where(
                WorkspaceInvite.expires_at.is_not(None),
                WorkspaceInvite.expires_at <= now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # -----------------------------------------------------------------------
    # Users / workspaces
    # -----------------------------------------------------------------------

    async def find_user(self, user_id: UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def find_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_workspace(self, workspace_id: UUID) -> Workspace | None:
        return await self.db.get(Workspace, workspace_id)
