"""
Membership store: uniqueness backstops and workspace-scoped invite lookup.

The service layer checks for duplicates before inserting. These tests go
straight to the store so the database constraint is what rejects the row.
"""

import pytest
from sqlalchemy import func, select

from app.core.exceptions import Conflict
from app.models.invitation import WorkspaceInvite
from app.models.member import WorkspaceMember, WorkspaceRole
from app.services.membership_store import MembershipStore


@pytest.fixture
def store(db):
    return MembershipStore(db)


async def _create_invite(store, workspace_id, created_by, token, email="bob@example.com"):
    return await store.create_invite(
        workspace_id=workspace_id,
        email=email,
        role=WorkspaceRole.member,
        token=token,
        created_by=created_by,
        expires_at=None,
    )


# ---------------------------------------------------------------------------
# Uniqueness backstops
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_second_invite_for_same_email_is_conflict(db, store, make_user, make_workspace):
    owner = await make_user("owner")
    workspace = await make_workspace(owner)
    workspace_id, owner_id = workspace.id, owner.id
    await _create_invite(store, workspace_id, owner_id, token="t1")
    await db.commit()

    with pytest.raises(Conflict) as exc_info:
        await _create_invite(store, workspace_id, owner_id, token="t2")
    assert exc_info.value.code == "INVITE_EXISTS"

    tokens = await db.scalars(
        select(WorkspaceInvite.token).where(WorkspaceInvite.workspace_id == workspace_id)
    )
    assert tokens.all() == ["t1"]


@pytest.mark.asyncio
async def test_second_membership_row_is_conflict(db, store, make_user, make_workspace):
    owner = await make_user("owner")
    workspace = await make_workspace(owner)
    workspace_id, owner_id = workspace.id, owner.id
    await db.commit()

    with pytest.raises(Conflict) as exc_info:
        await store.add_membership(owner_id, workspace_id, WorkspaceRole.member)
    assert exc_info.value.code == "ALREADY_MEMBER"

    count = await db.scalar(
        select(func.count()).select_from(WorkspaceMember).where(
            WorkspaceMember.user_id == owner_id,
            WorkspaceMember.workspace_id == workspace_id,
        )
    )
    assert count == 1
    member = await store.find_membership(owner_id, workspace_id)
    assert member.role is WorkspaceRole.owner


@pytest.mark.asyncio
async def test_same_email_may_be_invited_to_two_workspaces(db, store, make_user, make_workspace):
    owner = await make_user("owner")
    first = await make_workspace(owner, "First")
    second = await make_workspace(owner, "Second")

    await _create_invite(store, first.id, owner.id, token="t1")
    await _create_invite(store, second.id, owner.id, token="t2")

    assert await db.scalar(select(func.count()).select_from(WorkspaceInvite)) == 2


# ---------------------------------------------------------------------------
# find_invite
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_find_invite_is_scoped_to_workspace(store, make_user, make_workspace, make_invite):
    owner = await make_user("owner")
    home = await make_workspace(owner, "Home")
    other = await make_workspace(owner, "Other")
    invite = await make_invite(home, owner, "bob@example.com")

    found = await store.find_invite(home.id, invite.id)
    assert found is not None
    assert found.id == invite.id

    assert await store.find_invite(other.id, invite.id) is None


@pytest.mark.asyncio
async def test_delete_invite_requires_matching_workspace(store, make_user, make_workspace, make_invite):
    owner = await make_user("owner")
    home = await make_workspace(owner, "Home")
    other = await make_workspace(owner, "Other")
    invite = await make_invite(home, owner, "bob@example.com")

    assert await store.delete_invite(other.id, invite.id) is False
    assert await store.find_invite(home.id, invite.id) is not None

    assert await store.delete_invite(home.id, invite.id) is True
    assert await store.find_invite(home.id, invite.id) is None
