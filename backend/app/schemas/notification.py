"""
Pydantic schemas for notifications.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.notification import NotificationType


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------

class NotificationResponse(BaseModel):
    """Single notification response."""
    id: uuid.UUID
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    body: str | None
    entity_type: str | None
    entity_id: uuid.UUID | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Response for GET /notifications."""
    data: list[NotificationResponse]
    total: int
    unread_count: int


class NotificationPreferenceResponse(BaseModel):
    at_mentions: bool


class NotificationPreferenceUpdate(BaseModel):
    at_mentions: bool


# ---------------------------------------------------------------------------
# Mentions
# ---------------------------------------------------------------------------

class MentionFanOutRequest(BaseModel):
    """Request body for POST /notifications/mentions."""
    mentions: list[uuid.UUID] = Field(default_factory=list, max_length=100)
    context_type: Literal["activity", "deal", "contact", "company"]
    context_id: uuid.UUID
    context_name: str = Field(min_length=1, max_length=255)
    message: str | None = Field(default=None, max_length=2000)


class MentionFanOutResponse(BaseModel):
    notifications: list[NotificationResponse]
    count: int


# ---------------------------------------------------------------------------
# Internal schema used by notification_service to create notifications
# ---------------------------------------------------------------------------

class NotificationCreate(BaseModel):
    """Internal schema for creating a notification (not exposed via API)."""
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    body: str | None = None
    entity_type: str | None = None
    entity_id: uuid.UUID | None = None
