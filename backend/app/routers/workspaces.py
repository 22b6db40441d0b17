"""
Workspace endpoints.

Workspaces, members and workspace-scoped invite management.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.context import RequestContext, UserIdentity
from app.core.database import get_db
from app.core.dependencies import get_current_identity, get_request_context
from app.models.member import WorkspaceRole
from app.schemas.workspace import (
    InvitationResponse,
    InvitationsListResponse,
    InviteRequest,
    MemberResponse,
    MemberRoleUpdateRequest,
    MembersListResponse,
    MemberStatusResponse,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspacesListResponse,
    WorkspaceSwitchRequest,
    WorkspaceUpdateRequest,
)
from app.services.invite_service import InviteService
from app.services.membership_service import MembershipService
from app.services.workspace_service import WorkspaceService

router = APIRouter()


def get_workspace_service(db: AsyncSession = Depends(get_db)) -> WorkspaceService:
    return WorkspaceService(db=db)


def get_membership_service(db: AsyncSession = Depends(get_db)) -> MembershipService:
    return MembershipService(db=db)


def get_invite_service(db: AsyncSession = Depends(get_db)) -> InviteService:
    return InviteService(db=db)


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=WorkspacesListResponse,
    summary="List the caller's workspaces",
)
async def list_workspaces(
    ctx: RequestContext = Depends(get_request_context),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspacesListResponse:
    return await service.list_user_workspaces(ctx.user_id, ctx.workspace_id)


@router.post(
    "",
    response_model=WorkspaceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace",
)
async def create_workspace(
    data: WorkspaceCreateRequest,
    identity: UserIdentity = Depends(get_current_identity),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceResponse:
    """The caller becomes the owner of the new workspace."""
    return await service.create_workspace(identity.id, data.name)


@router.post(
    "/switch",
    response_model=WorkspaceResponse,
    summary="Bind subsequent requests to a workspace",
)
async def switch_workspace(
    data: WorkspaceSwitchRequest,
    response: Response,
    identity: UserIdentity = Depends(get_current_identity),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceResponse:
    """
    Remember the chosen workspace in a cookie. The choice is re-verified on
    every request, so a later removal takes effect immediately.
    """
    workspace = await service.switch_workspace(identity.id, data.workspace_id)
    response.set_cookie(
        key=settings.WORKSPACE_COOKIE_NAME,
        value=str(workspace.id),
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return workspace


@router.patch(
    "/{workspace_id}",
    response_model=WorkspaceResponse,
    summary="Rename a workspace (owner only)",
)
async def update_workspace(
    workspace_id: UUID,
    data: WorkspaceUpdateRequest,
    identity: UserIdentity = Depends(get_current_identity),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceResponse:
    return await service.update_workspace(identity, workspace_id, data.name)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get(
    "/{workspace_id}/members",
    response_model=MembersListResponse,
    summary="List active members",
)
async def list_members(
    workspace_id: UUID,
    identity: UserIdentity = Depends(get_current_identity),
    service: MembershipService = Depends(get_membership_service),
) -> MembersListResponse:
    return await service.list_members(identity, workspace_id)


@router.get(
    "/{workspace_id}/members/{user_id}/status",
    response_model=MemberStatusResponse,
    summary="Membership status of a user",
)
async def get_member_status(
    workspace_id: UUID,
    user_id: UUID,
    identity: UserIdentity = Depends(get_current_identity),
    service: MembershipService = Depends(get_membership_service),
) -> MemberStatusResponse:
    return await service.get_member_status(identity, workspace_id, user_id)


@router.patch(
    "/{workspace_id}/members/{user_id}",
    response_model=MemberResponse,
    summary="Change a member's role",
)
async def update_member_role(
    workspace_id: UUID,
    user_id: UUID,
    data: MemberRoleUpdateRequest,
    identity: UserIdentity = Depends(get_current_identity),
    service: MembershipService = Depends(get_membership_service),
) -> MemberResponse:
    return await service.update_member_role(
        identity, workspace_id, user_id, WorkspaceRole(data.role)
    )


@router.delete(
    "/{workspace_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member, or leave the workspace",
)
async def remove_member(
    workspace_id: UUID,
    user_id: UUID,
    identity: UserIdentity = Depends(get_current_identity),
    service: MembershipService = Depends(get_membership_service),
) -> None:
    await service.remove_member(identity, workspace_id, user_id)


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

@router.get(
    "/{workspace_id}/invites",
    response_model=InvitationsListResponse,
    summary="List pending invites (admin)",
)
async def list_invites(
    workspace_id: UUID,
    identity: UserIdentity = Depends(get_current_identity),
    service: InviteService = Depends(get_invite_service),
) -> InvitationsListResponse:
    return await service.list_invites(identity, workspace_id)


@router.post(
    "/{workspace_id}/invites",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone by email (admin)",
)
async def create_invite(
    workspace_id: UUID,
    data: InviteRequest,
    identity: UserIdentity = Depends(get_current_identity),
    service: InviteService = Depends(get_invite_service),
) -> InvitationResponse:
    return await service.create_invite(
        identity, workspace_id, str(data.email), WorkspaceRole(data.role)
    )


@router.delete(
    "/{workspace_id}/invites/{invite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a pending invite (admin)",
)
async def cancel_invite(
    workspace_id: UUID,
    invite_id: UUID,
    identity: UserIdentity = Depends(get_current_identity),
    service: InviteService = Depends(get_invite_service),
) -> None:
    """404 both for unknown ids and for ids belonging to another workspace."""
    await service.cancel_invite(identity, workspace_id, invite_id)
