"""
Notification endpoints.

GET    /notifications               - list notifications in the bound workspace
PATCH  /notifications/{id}/read     - mark single notification as read
POST   /notifications/mark-all-read - mark all notifications as read
POST   /notifications/mentions      - notify mentioned workspace members
GET    /notifications/preferences   - mention preference
PUT    /notifications/preferences   - update mention preference
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import RequestContext, UserIdentity
from app.core.database import get_db
from app.core.dependencies import get_current_identity, get_request_context
from app.core.exceptions import Forbidden
from app.schemas.notification import (
    MentionFanOutRequest,
    MentionFanOutResponse,
    NotificationListResponse,
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
    NotificationResponse,
)
from app.services.notification_service import NotificationService

router = APIRouter()


def get_notification_service(
    db: AsyncSession = Depends(get_db),
) -> NotificationService:
    return NotificationService(db=db)


def _bound_workspace(ctx: RequestContext) -> UUID:
    if ctx.workspace_id is None:
        raise Forbidden("You are not a member of any workspace", code="NO_WORKSPACE")
    return ctx.workspace_id


# ---------------------------------------------------------------------------
# GET /notifications
# ---------------------------------------------------------------------------

@router.get(
    "/notifications",
    response_model=NotificationListResponse,
    summary="List notifications for current user",
)
async def list_notifications(
    unread: bool = Query(default=False, description="Filter to unread only"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=25, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    return await service.list_notifications(
        user_id=ctx.user_id,
        workspace_id=_bound_workspace(ctx),
        unread_only=unread,
        skip=skip,
        limit=limit,
    )


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

@router.get(
    "/notifications/preferences",
    response_model=NotificationPreferenceResponse,
    summary="Get notification preferences",
)
async def get_preferences(
    identity: UserIdentity = Depends(get_current_identity),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceResponse:
    return await service.get_preferences(identity.id)


@router.put(
    "/notifications/preferences",
    response_model=NotificationPreferenceResponse,
    summary="Update notification preferences",
)
async def update_preferences(
    data: NotificationPreferenceUpdate,
    identity: UserIdentity = Depends(get_current_identity),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceResponse:
    return await service.update_preferences(identity.id, data.at_mentions)


# ---------------------------------------------------------------------------
# POST /notifications/mentions
# ---------------------------------------------------------------------------

@router.post(
    "/notifications/mentions",
    response_model=MentionFanOutResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Notify mentioned members of the bound workspace",
)
async def create_mention_notifications(
    data: MentionFanOutRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationService = Depends(get_notification_service),
) -> MentionFanOutResponse:
    """Mentions of non-members, removed members or the caller are dropped."""
    return await service.fan_out_mentions(
        actor=ctx.identity,
        workspace_id=_bound_workspace(ctx),
        mentioned_user_ids=data.mentions,
        context_type=data.context_type,
        context_id=data.context_id,
        context_name=data.context_name,
        message=data.message,
    )


# ---------------------------------------------------------------------------
# PATCH /notifications/{notification_id}/read
# ---------------------------------------------------------------------------

@router.patch(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a single notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    return await service.mark_read(
        notification_id=notification_id,
        user_id=ctx.user_id,
        workspace_id=_bound_workspace(ctx),
    )


# ---------------------------------------------------------------------------
# POST /notifications/mark-all-read
# ---------------------------------------------------------------------------

@router.post(
    "/notifications/mark-all-read",
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    return await service.mark_all_read(
        user_id=ctx.user_id,
        workspace_id=_bound_workspace(ctx),
    )
