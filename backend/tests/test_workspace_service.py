"""
Workspace creation, slugs and renaming.
"""

import pytest
from sqlalchemy import func, select

from app.core.exceptions import Conflict
from app.models.member import WorkspaceRole
from app.models.workspace import Workspace
from app.services.membership_store import MembershipStore
from app.services.workspace_service import WorkspaceService, slugify

from conftest import identity_of


@pytest.fixture
def service(db):
    return WorkspaceService(db)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Acme Sales Team!", "acme-sales-team"),
        ("  Dana's Workspace ", "dana-s-workspace"),
        ("!!!", "workspace"),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


@pytest.mark.asyncio
async def test_create_workspace_makes_creator_owner(db, service, make_user):
    owner = await make_user("owner")

    first = await service.create_workspace(owner.id, "Acme Sales")
    second = await service.create_workspace(owner.id, "Acme Sales")

    assert first.slug == "acme-sales"
    assert second.slug == "acme-sales-1"
    member = await MembershipStore(db).find_membership(owner.id, first.id)
    assert member.role is WorkspaceRole.owner


async def _slug_count(db, slug) -> int:
    return await db.scalar(
        select(func.count()).select_from(Workspace).where(Workspace.slug == slug)
    )


@pytest.mark.asyncio
async def test_concurrent_slug_claim_is_conflict(db, service, make_user, monkeypatch):
    owner = await make_user("owner")
    taken = await service.create_workspace(owner.id, "Acme")
    owner_id = owner.id
    await db.commit()

    # Simulate another request inserting "acme" after our slug lookup.
    async def stale_slug(name, exclude_id=None):
        return taken.slug

    monkeypatch.setattr(service, "_unique_slug", stale_slug)

    with pytest.raises(Conflict) as exc_info:
        await service.create_workspace(owner_id, "Acme")
    assert exc_info.value.code == "WORKSPACE_SLUG_TAKEN"
    assert await _slug_count(db, taken.slug) == 1


@pytest.mark.asyncio
async def test_rename_onto_claimed_slug_is_conflict(db, service, make_user, monkeypatch):
    owner = await make_user("owner")
    actor = identity_of(owner)
    taken = await service.create_workspace(owner.id, "Acme")
    mine = await service.create_workspace(owner.id, "Beta")
    await db.commit()

    async def stale_slug(name, exclude_id=None):
        return taken.slug

    monkeypatch.setattr(service, "_unique_slug", stale_slug)

    with pytest.raises(Conflict) as exc_info:
        await service.update_workspace(actor, mine.id, "Acme")
    assert exc_info.value.code == "WORKSPACE_SLUG_TAKEN"
    assert await _slug_count(db, "beta") == 1
