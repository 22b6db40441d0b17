"""
Business logic for notifications.
Handles creation, mention fan-out, read-state and preferences.
All queries scoped by workspace_id / user_id; invite notifications are
visible from any workspace.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import UserIdentity
from app.core.exceptions import NotFound
from app.models.member import WorkspaceRole
from app.models.notification import Notification, NotificationPreference, NotificationType
from app.schemas.notification import (
    MentionFanOutResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationPreferenceResponse,
    NotificationResponse,
)
from app.services.membership_guard import MembershipGuard
from app.services.membership_store import MembershipStore

logger = logging.getLogger(__name__)


def _in_scope(workspace_id: uuid.UUID):
    # Invites are addressed to people who are not members yet, so they show
    # up whichever workspace the recipient is currently bound to.
    return or_(
        Notification.workspace_id == workspace_id,
        Notification.type == NotificationType.WORKSPACE_INVITE,
    )


class NotificationService:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db
        self._store = MembershipStore(db)
        self._guard = MembershipGuard(self._store)

    # ------------------------------------------------------------------
    # Create a notification record in the DB
    # Called from invite / membership services inside their transaction
    # ------------------------------------------------------------------

    async def create(self, data: NotificationCreate) -> Notification:
        notification = Notification(
            workspace_id=data.workspace_id,
            user_id=data.user_id,
            type=data.type,
            title=data.title,
            body=data.body,
            entity_type=data.entity_type,
            entity_id=data.entity_id,
            is_read=False,
        )
        self._db.add(notification)
        await self._db.flush()
        return notification

    # ------------------------------------------------------------------
    # POST /notifications/mentions
    # ------------------------------------------------------------------

    async def fan_out_mentions(
        self,
        actor: UserIdentity,
        workspace_id: uuid.UUID,
        mentioned_user_ids: list[uuid.UUID],
        context_type: str,
        context_id: uuid.UUID,
        context_name: str,
        message: str | None = None,
    ) -> MentionFanOutResponse:
        """
        Notify mentioned users in a workspace.

        The actor must be an active member. Recipients are narrowed to active
        members of the same workspace, never the actor, each at most once,
        and skipped when they turned mention notifications off.
        """
        await self._guard.ensure_role(actor.id, workspace_id, WorkspaceRole.member)

        requested = {user_id for user_id in mentioned_user_ids if user_id != actor.id}
        recipients = await self._store.active_member_ids(workspace_id, requested)
        if recipients:
            opted_out = await self._db.scalars(
                select(NotificationPreference.user_id).where(
                    NotificationPreference.user_id.in_(recipients),
                    NotificationPreference.at_mentions.is_(False),
                )
            )
            recipients -= set(opted_out.all())

        dropped = len(requested) - len(recipients)
        if dropped:
            logger.info(
                "Mention fan-out filtered workspace_id=%s dropped=%d",
                workspace_id,
                dropped,
            )

        created: list[Notification] = []
        # Caller's order, first occurrence wins.
        seen: set[uuid.UUID] = set()
        for user_id in mentioned_user_ids:
            if user_id not in recipients or user_id in seen:
                continue
            seen.add(user_id)
            created.append(
                await self.create(
                    NotificationCreate(
                        workspace_id=workspace_id,
                        user_id=user_id,
                        type=NotificationType.MENTION,
                        title=f"{actor.display_name} mentioned you in {context_name}",
                        body=message,
                        entity_type=context_type,
                        entity_id=context_id,
                    )
                )
            )

        return MentionFanOutResponse(
            notifications=[NotificationResponse.model_validate(n) for n in created],
            count=len(created),
        )

    # ------------------------------------------------------------------
    # GET /notifications
    # ------------------------------------------------------------------

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 25,
    ) -> NotificationListResponse:
        """
        List notifications for the current user, scoped by workspace.
        Optionally filter to unread only.
        """
        base_stmt = select(Notification).where(
            Notification.user_id == user_id,
            _in_scope(workspace_id),
        )

        if unread_only:
            base_stmt = base_stmt.where(Notification.is_read.is_(False))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = await self._db.scalar(count_stmt) or 0

        # Unread count (always, regardless of filter)
        unread_stmt = select(func.count()).where(
            Notification.user_id == user_id,
            _in_scope(workspace_id),
            Notification.is_read.is_(False),
        )
        unread_count = await self._db.scalar(unread_stmt) or 0

        rows_stmt = (
            base_stmt
            .order_by(Notification.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self._db.execute(rows_stmt)
        notifications = result.scalars().all()

        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in notifications],
            total=total,
            unread_count=unread_count,
        )

    # ------------------------------------------------------------------
    # PATCH /notifications/{id}/read
    # ------------------------------------------------------------------

    async def mark_read(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> NotificationResponse:
        """
        Mark a single notification as read.
        Scoped to user_id + workspace_id to prevent cross-user updates.
        """
        notification = await self._db.scalar(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                _in_scope(workspace_id),
            )
        )
        if not notification:
            raise NotFound("Notification not found", code="NOTIFICATION_NOT_FOUND")

        notification.is_read = True
        await self._db.flush()
        return NotificationResponse.model_validate(notification)

    # ------------------------------------------------------------------
    # POST /notifications/mark-all-read
    # ------------------------------------------------------------------

    async def mark_all_read(
        self,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> dict[str, int]:
        """Returns count of updated rows."""
        result = await self._db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                _in_scope(workspace_id),
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return {"updated": result.rowcount}

    # ------------------------------------------------------------------
    # GET/PUT /notifications/preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, user_id: uuid.UUID) -> NotificationPreferenceResponse:
        pref = await self._db.get(NotificationPreference, user_id)
        return NotificationPreferenceResponse(at_mentions=pref.at_mentions if pref else True)

    async def update_preferences(
        self, user_id: uuid.UUID, at_mentions: bool
    ) -> NotificationPreferenceResponse:
        pref = await self._db.get(NotificationPreference, user_id)
        if pref is None:
            pref = NotificationPreference(user_id=user_id, at_mentions=at_mentions)
            self._db.add(pref)
        else:
            pref.at_mentions = at_mentions
        await self._db.flush()
        return NotificationPreferenceResponse(at_mentions=pref.at_mentions)
