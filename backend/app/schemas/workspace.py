"""
Workspace schemas.

Request/response models for workspace, member and invite endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------

class WorkspaceCreateRequest(BaseModel):
    """Request body for POST /workspaces."""

    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Workspace name is required")
        return v.strip()


class WorkspaceUpdateRequest(WorkspaceCreateRequest):
    """Request body for PATCH /workspaces/{workspace_id}."""


class WorkspaceSwitchRequest(BaseModel):
    """Request body for POST /workspaces/switch."""

    workspace_id: UUID


class WorkspaceResponse(BaseModel):
    """Workspace detail response."""

    id: UUID
    name: str
    slug: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WorkspaceSummary(BaseModel):
    """A workspace the caller belongs to, with the caller's role in it."""

    id: UUID
    name: str
    slug: str
    role: str
    joined_at: datetime


class WorkspacesListResponse(BaseModel):
    """Response for GET /workspaces."""

    workspaces: list[WorkspaceSummary]
    current_workspace_id: UUID | None


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberResponse(BaseModel):
    """Single workspace member with user info and role."""

    id: UUID
    user_id: UUID
    email: str
    display_name: str
    avatar_url: str | None
    role: str
    joined_at: datetime


class MembersListResponse(BaseModel):
    """Response for GET /workspaces/{workspace_id}/members."""

    members: list[MemberResponse]
    total: int
    current_user_role: str


class MemberRoleUpdateRequest(BaseModel):
    """Request body for PATCH /workspaces/{workspace_id}/members/{user_id}."""

    role: str = Field(pattern="^(owner|admin|member)$")


class MemberStatusResponse(BaseModel):
    """Membership status of one user in one workspace."""

    exists: bool
    is_active: bool
    is_removed: bool
    role: str | None
    removed_at: datetime | None


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

class InviteRequest(BaseModel):
    """Request body for POST /workspaces/{workspace_id}/invites."""

    email: EmailStr
    role: str = Field(default="member", pattern="^(admin|member)$")


class InviterResponse(BaseModel):
    id: UUID
    email: str
    display_name: str


class InvitationResponse(BaseModel):
    """Invitation detail response."""

    id: UUID
    workspace_id: UUID
    email: str
    role: str
    token: str
    invite_url: str
    created_by: UUID
    created_at: datetime
    expires_at: datetime | None


class InvitationsListResponse(BaseModel):
    """Response for listing pending invitations."""

    invitations: list[InvitationResponse]
    total: int


class InvitePreviewResponse(BaseModel):
    """Response for GET /invites/{token}."""

    id: UUID
    workspace_id: UUID
    workspace_name: str
    invited_by: InviterResponse | None
    email: str
    role: str
    expires_at: datetime | None


class InviteAcceptResponse(BaseModel):
    """Response for POST /invites/{token}/accept."""

    workspace: WorkspaceResponse
    message: str
