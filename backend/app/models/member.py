"""
WorkspaceMember ORM model, role ordering and membership state.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, UUIDMixin, ensure_utc, utcnow

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.workspace import Workspace


class WorkspaceRole(str, enum.Enum):
    """
    Workspace role, totally ordered: member < admin < owner.

    Compare roles with the ordering operators or `satisfies`, never with
    string equality against a required level.
    """

    member = "member"
    admin = "admin"
    owner = "owner"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def satisfies(self, minimum: WorkspaceRole) -> bool:
        return self.rank >= minimum.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, WorkspaceRole):
            raise _not_comparable(self, other)
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, WorkspaceRole):
            raise _not_comparable(self, other)
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, WorkspaceRole):
            raise _not_comparable(self, other)
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, WorkspaceRole):
            raise _not_comparable(self, other)
        return self.rank >= other.rank


def _not_comparable(role: WorkspaceRole, other: object) -> TypeError:
    return TypeError(f"cannot order {role!r} against {other!r}; coerce with WorkspaceRole(...) first")


_ROLE_RANK = {
    WorkspaceRole.member: 1,
    WorkspaceRole.admin: 2,
    WorkspaceRole.owner: 3,
}


@dataclass(frozen=True)
class Active:
    """Membership grants operational access."""


@dataclass(frozen=True)
class Removed:
    """Membership was revoked; the row is kept for audit."""

    at: datetime


MembershipState = Active | Removed


class WorkspaceMember(Base, UUIDMixin):
    """Links a user to a workspace with a role. Soft-deleted via removed_at."""

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("user_id", "workspace_id", name="uq_workspace_members_user_workspace"),
    )

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        Enum(WorkspaceRole, name="workspace_role"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    removed_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    workspace: Mapped[Workspace] = relationship("Workspace", back_populates="members")
    user: Mapped[User] = relationship(
        "User", back_populates="workspace_memberships", foreign_keys=[user_id]
    )

    @property
    def state(self) -> MembershipState:
        if self.removed_at is None:
            return Active()
        return Removed(at=ensure_utc(self.removed_at))

    @property
    def is_active(self) -> bool:
        return isinstance(self.state, Active)

    def reactivate(self, role: WorkspaceRole) -> None:
        """Bring a removed membership back instead of inserting a second row."""
        self.removed_at = None
        self.removed_by_id = None
        self.role = role
        self.joined_at = utcnow()

    def __repr__(self) -> str:
        return (
            f"<WorkspaceMember workspace_id={self.workspace_id} user_id={self.user_id} "
            f"role={self.role} state={self.state}>"
        )
