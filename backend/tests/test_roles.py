"""
Role ordering and membership state.
"""

from datetime import UTC, datetime

import pytest

from app.models.member import Active, Removed, WorkspaceMember, WorkspaceRole


def test_roles_are_totally_ordered():
    assert WorkspaceRole.member < WorkspaceRole.admin < WorkspaceRole.owner
    assert WorkspaceRole.owner > WorkspaceRole.member
    assert WorkspaceRole.admin >= WorkspaceRole.admin
    assert sorted([WorkspaceRole.owner, WorkspaceRole.member, WorkspaceRole.admin]) == [
        WorkspaceRole.member,
        WorkspaceRole.admin,
        WorkspaceRole.owner,
    ]


@pytest.mark.parametrize(
    ("role", "minimum", "expected"),
    [
        (WorkspaceRole.member, WorkspaceRole.member, True),
        (WorkspaceRole.member, WorkspaceRole.admin, False),
        (WorkspaceRole.admin, WorkspaceRole.member, True),
        (WorkspaceRole.admin, WorkspaceRole.owner, False),
        (WorkspaceRole.owner, WorkspaceRole.admin, True),
    ],
)
def test_satisfies(role, minimum, expected):
    assert role.satisfies(minimum) is expected


def test_ordering_does_not_fall_back_to_string_comparison():
    # Alphabetically "admin" < "member"; by rank it is the other way round.
    assert WorkspaceRole.admin > WorkspaceRole.member
    assert max(WorkspaceRole.admin, WorkspaceRole.member) is WorkspaceRole.admin


def test_membership_state_is_tagged():
    member = WorkspaceMember(role=WorkspaceRole.member)
    assert member.state == Active()
    assert member.is_active

    removed_at = datetime(2026, 1, 1, 12, 0)
    member.removed_at = removed_at
    assert member.state == Removed(at=removed_at.replace(tzinfo=UTC))
    assert not member.is_active


def test_reactivate_clears_removal():
    member = WorkspaceMember(role=WorkspaceRole.admin)
    member.removed_at = datetime.now(UTC)
    member.reactivate(WorkspaceRole.member)
    assert member.is_active
    assert member.removed_by_id is None
    assert member.role is WorkspaceRole.member


@pytest.mark.parametrize("other", ["member", "owner", 2, None])
def test_ordering_against_non_roles_raises(other):
    with pytest.raises(TypeError):
        WorkspaceRole.admin > other
    with pytest.raises(TypeError):
        WorkspaceRole.admin < other


def test_reflected_string_comparison_raises():
    # "owner" > admin would otherwise compare alphabetically.
    with pytest.raises(TypeError):
        "owner" > WorkspaceRole.admin
    assert WorkspaceRole.admin == "admin"
