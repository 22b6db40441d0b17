"""
Invite endpoints addressed by token.

Preview is public so the invite page can render before sign-in; accepting
requires a session.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.context import UserIdentity
from app.core.dependencies import get_current_identity
from app.routers.workspaces import get_invite_service
from app.schemas.workspace import InviteAcceptResponse, InvitePreviewResponse
from app.services.invite_service import InviteService

router = APIRouter()


@router.get(
    "/{token}",
    response_model=InvitePreviewResponse,
    summary="Preview an invite",
)
async def get_invite(
    token: str,
    service: InviteService = Depends(get_invite_service),
) -> InvitePreviewResponse:
    """404 for unknown tokens, 410 once expired."""
    return await service.get_invite_preview(token)


@router.post(
    "/{token}/accept",
    response_model=InviteAcceptResponse,
    summary="Accept an invite",
)
async def accept_invite(
    token: str,
    identity: UserIdentity = Depends(get_current_identity),
    service: InviteService = Depends(get_invite_service),
) -> InviteAcceptResponse:
    return await service.accept_invite_by_token(identity, token)
