"""
Workspace business logic.

Handles workspace creation, listing, switching and renaming.
"""

from __future__ import annotations

import logging
import re
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import UserIdentity
from app.core.exceptions import Conflict, Forbidden
from app.models.member import WorkspaceRole
from app.models.user import User
from app.models.workspace import Workspace
from app.schemas.workspace import WorkspaceResponse, WorkspacesListResponse, WorkspaceSummary
from app.services.membership_guard import MembershipGuard
from app.services.membership_store import MembershipStore

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """'Acme Sales Team!' -> 'acme-sales-team'"""
    slug = _NON_ALNUM.sub("-", name.lower()).strip("-")
    return slug or "workspace"


class WorkspaceService:
    """Handles all workspace operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.store = MembershipStore(db)
        self.guard = MembershipGuard(self.store)

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create_workspace(self, owner_id: UUID, name: str) -> WorkspaceResponse:
        """
        Create a workspace and make the creator its owner.

        The slug is derived from the name and suffixed -1, -2, ... until free.
        """
        workspace = Workspace(name=name, slug=await self._unique_slug(name))
        self.db.add(workspace)
        await self._flush_slug()

        await self.store.add_membership(owner_id, workspace.id, WorkspaceRole.owner)

        logger.info("Workspace created workspace_id=%s owner_id=%s", workspace.id, owner_id)
        return WorkspaceResponse.model_validate(workspace)

    async def create_personal_workspace(self, user: User) -> WorkspaceResponse:
        return await self.create_workspace(user.id, f"{user.display_name}'s Workspace")

    # -----------------------------------------------------------------------
    # List / switch
    # -----------------------------------------------------------------------

    async def list_user_workspaces(
        self, user_id: UUID, current_workspace_id: UUID | None = None
    ) -> WorkspacesListResponse:
        rows = await self.store.list_user_workspaces(user_id)
        return WorkspacesListResponse(
            workspaces=[
                WorkspaceSummary(
                    id=workspace.id,
                    name=workspace.name,
                    slug=workspace.slug,
                    role=member.role.value,
                    joined_at=member.joined_at,
                )
                for workspace, member in rows
            ],
            current_workspace_id=current_workspace_id,
        )

    async def switch_workspace(self, user_id: UUID, workspace_id: UUID) -> WorkspaceResponse:
        """Verify the caller may bind to `workspace_id`. The router persists the choice."""
        member = await self.store.find_membership(user_id, workspace_id)
        if member is None or not member.is_active:
            raise Forbidden("You don't have access to this workspace")
        workspace = await self.store.get_workspace(workspace_id)
        return WorkspaceResponse.model_validate(workspace)

    # -----------------------------------------------------------------------
    # Update
    # -----------------------------------------------------------------------

    async def update_workspace(
        self, actor: UserIdentity, workspace_id: UUID, name: str
    ) -> WorkspaceResponse:
        await self.guard.ensure_role(actor.id, workspace_id, WorkspaceRole.owner)
        workspace = await self.store.get_workspace(workspace_id)

        if name != workspace.name:
            workspace.name = name
            workspace.slug = await self._unique_slug(name, exclude_id=workspace.id)
            await self._flush_slug()

        logger.info("Workspace updated workspace_id=%s actor_id=%s", workspace_id, actor.id)
        return WorkspaceResponse.model_validate(workspace)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _flush_slug(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError:
            # Another request claimed the slug between lookup and write.
            await self.db.rollback()
            raise Conflict(
                "A workspace with this name was just created, please retry",
                code="WORKSPACE_SLUG_TAKEN",
            ) from None

    async def _unique_slug(self, name: str, exclude_id: UUID | None = None) -> str:
        base = slugify(name)
        stmt = select(Workspace.slug).where(
            (Workspace.slug == base) | (Workspace.slug.like(f"{base}-%"))
        )
        if exclude_id is not None:
            stmt = stmt.where(Workspace.id != exclude_id)
        taken = set((await self.db.scalars(stmt)).all())

        slug, suffix = base, 1
        while slug in taken:
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug
