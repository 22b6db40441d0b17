"""
Mention fan-out gate, read state and preferences.
"""

import uuid

import pytest

from app.core.exceptions import Forbidden, NotFound
from app.models.member import WorkspaceRole
from app.models.notification import NotificationType
from app.schemas.notification import NotificationCreate
from app.services.membership_store import MembershipStore
from app.services.notification_service import NotificationService

from conftest import identity_of


@pytest.fixture
def service(db):
    return NotificationService(db)


async def _fan_out(service, actor, workspace_id, mentions):
    return await service.fan_out_mentions(
        actor=identity_of(actor),
        workspace_id=workspace_id,
        mentioned_user_ids=mentions,
        context_type="deal",
        context_id=uuid.uuid4(),
        context_name="Big Deal",
        message="Can you take a look?",
    )


@pytest.mark.asyncio
async def test_mentions_reach_active_members_only(
    db, service, make_user, make_workspace, add_member
):
    owner = await make_user("owner")
    alice = await make_user("alice")
    removed = await make_user("removed")
    outsider = await make_user("outsider")
    workspace = await make_workspace(owner)
    await add_member(workspace, alice)
    await add_member(workspace, removed)
    await MembershipStore(db).soft_delete_membership(removed.id, workspace.id, owner.id)

    result = await _fan_out(
        service, owner, workspace.id, [alice.id, removed.id, outsider.id, uuid.uuid4()]
    )

    assert result.count == 1
    assert [n.user_id for n in result.notifications] == [alice.id]
    assert result.notifications[0].type is NotificationType.MENTION
    assert result.notifications[0].workspace_id == workspace.id
    assert result.notifications[0].entity_type == "deal"


@pytest.mark.asyncio
async def test_mentions_skip_actor_and_duplicates(service, make_user, make_workspace, add_member):
    owner = await make_user("owner")
    alice = await make_user("alice")
    workspace = await make_workspace(owner)
    await add_member(workspace, alice)

    result = await _fan_out(service, owner, workspace.id, [alice.id, owner.id, alice.id])

    assert result.count == 1
    assert result.notifications[0].user_id == alice.id


@pytest.mark.asyncio
async def test_mentions_respect_preferences(service, make_user, make_workspace, add_member):
    owner = await make_user("owner")
    alice = await make_user("alice")
    bob = await make_user("bob")
    workspace = await make_workspace(owner)
    await add_member(workspace, alice)
    await add_member(workspace, bob)

    await service.update_preferences(bob.id, at_mentions=False)
    result = await _fan_out(service, owner, workspace.id, [alice.id, bob.id])

    assert [n.user_id for n in result.notifications] == [alice.id]


@pytest.mark.asyncio
async def test_non_member_cannot_fan_out(service, make_user, make_workspace):
    owner = await make_user("owner")
    outsider = await make_user("outsider")
    workspace = await make_workspace(owner)

    with pytest.raises(Forbidden):
        await _fan_out(service, outsider, workspace.id, [owner.id])


@pytest.mark.asyncio
async def test_list_and_mark_read_are_scoped(service, make_user, make_workspace, add_member):
    owner = await make_user("owner")
    alice = await make_user("alice")
    first = await make_workspace(owner, "First")
    second = await make_workspace(owner, "Second")
    await add_member(first, alice, WorkspaceRole.member)
    await add_member(second, alice, WorkspaceRole.member)

    await _fan_out(service, owner, first.id, [alice.id])
    other = await _fan_out(service, owner, second.id, [alice.id])

    listing = await service.list_notifications(alice.id, first.id)
    assert listing.total == 1
    assert listing.unread_count == 1

    with pytest.raises(NotFound):
        await service.mark_read(other.notifications[0].id, alice.id, first.id)
    with pytest.raises(NotFound):
        await service.mark_read(listing.data[0].id, owner.id, first.id)

    marked = await service.mark_read(listing.data[0].id, alice.id, first.id)
    assert marked.is_read is True
    assert (await service.list_notifications(alice.id, first.id)).unread_count == 0
    assert (await service.list_notifications(alice.id, second.id)).unread_count == 1


@pytest.mark.asyncio
async def test_invite_notifications_visible_from_any_workspace(
    service, make_user, make_workspace
):
    owner = await make_user("owner")
    bob = await make_user("bob")
    inviting = await make_workspace(owner, "Inviting")
    own = await make_workspace(bob, "Own")

    await service.create(
        NotificationCreate(
            workspace_id=inviting.id,
            user_id=bob.id,
            type=NotificationType.WORKSPACE_INVITE,
            title="Workspace Invitation",
        )
    )

    listing = await service.list_notifications(bob.id, own.id)
    assert [n.type for n in listing.data] == [NotificationType.WORKSPACE_INVITE]


@pytest.mark.asyncio
async def test_mark_all_read(service, make_user, make_workspace, add_member):
    owner = await make_user("owner")
    alice = await make_user("alice")
    workspace = await make_workspace(owner)
    await add_member(workspace, alice)
    for _ in range(3):
        await _fan_out(service, owner, workspace.id, [alice.id])

    assert await service.mark_all_read(alice.id, workspace.id) == {"updated": 3}


@pytest.mark.asyncio
async def test_preferences_default_and_update(service, make_user):
    user = await make_user("user")
    assert (await service.get_preferences(user.id)).at_mentions is True
    assert (await service.update_preferences(user.id, False)).at_mentions is False
    assert (await service.get_preferences(user.id)).at_mentions is False
    assert (await service.update_preferences(user.id, True)).at_mentions is True
