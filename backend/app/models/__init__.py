"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.member import Active, MembershipState, Removed, WorkspaceMember, WorkspaceRole
from app.models.workspace import Workspace
from app.models.user import User
from app.models.invitation import WorkspaceInvite
from app.models.notification import Notification, NotificationPreference, NotificationType

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Workspace",
    "User",
    "WorkspaceMember",
    "WorkspaceRole",
    "MembershipState",
    "Active",
    "Removed",
    "WorkspaceInvite",
    "Notification",
    "NotificationPreference",
    "NotificationType",
]
