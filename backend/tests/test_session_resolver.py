"""
Session credential resolution.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.context import UserIdentity
from app.core.security import create_session_token, revoked_session_redis_key
from app.services.session_resolver import SessionResolver, TokenIdentityProvider


@pytest.fixture
def resolver(db, fake_redis):
    return SessionResolver(TokenIdentityProvider(db=db, redis=fake_redis))


class RecordingProvider:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def validate_credential(self, raw: str) -> UserIdentity | None:
        self.calls.append(raw)
        return None


@pytest.mark.asyncio
@pytest.mark.parametrize("credential", [None, "", "   "])
async def test_blank_credential_skips_provider(credential):
    provider = RecordingProvider()
    assert await SessionResolver(provider).resolve(credential) is None
    assert provider.calls == []


@pytest.mark.asyncio
async def test_valid_token_resolves_identity(resolver, make_user):
    user = await make_user("alice")
    token, _ = create_session_token(str(user.id))

    identity = await resolver.resolve(token)
    assert identity == UserIdentity(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        avatar_url=None,
    )


@pytest.mark.asyncio
async def test_garbage_token_resolves_to_none(resolver):
    assert await resolver.resolve("not-a-jwt") is None


@pytest.mark.asyncio
async def test_expired_token_resolves_to_none(resolver, make_user):
    user = await make_user("alice")
    past = datetime.now(UTC) - timedelta(hours=2)
    token = jwt.encode(
        {
            "sub": str(user.id),
            "jti": str(uuid.uuid4()),
            "type": "session",
            "iat": past,
            "exp": past + timedelta(minutes=5),
        },
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert await resolver.resolve(token) is None


@pytest.mark.asyncio
async def test_wrong_token_type_resolves_to_none(resolver, make_user):
    user = await make_user("alice")
    token = jwt.encode(
        {
            "sub": str(user.id),
            "jti": str(uuid.uuid4()),
            "type": "access",
            "exp": datetime.now(UTC) + timedelta(minutes=5),
        },
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert await resolver.resolve(token) is None


@pytest.mark.asyncio
async def test_tampered_token_resolves_to_none(resolver, make_user):
    user = await make_user("alice")
    token = jwt.encode(
        {
            "sub": str(user.id),
            "jti": str(uuid.uuid4()),
            "type": "session",
            "exp": datetime.now(UTC) + timedelta(minutes=5),
        },
        "a-completely-different-secret-key-value",
        algorithm=settings.JWT_ALGORITHM,
    )
    assert await resolver.resolve(token) is None


@pytest.mark.asyncio
async def test_revoked_token_resolves_to_none(resolver, fake_redis, make_user):
    user = await make_user("alice")
    token, jti = create_session_token(str(user.id))
    await fake_redis.setex(revoked_session_redis_key(jti), 60, "1")
    assert await resolver.resolve(token) is None


@pytest.mark.asyncio
async def test_unknown_user_resolves_to_none(resolver):
    token, _ = create_session_token(str(uuid.uuid4()))
    assert await resolver.resolve(token) is None


@pytest.mark.asyncio
async def test_inactive_user_resolves_to_none(resolver, make_user):
    user = await make_user("alice", is_active=False)
    token, _ = create_session_token(str(user.id))
    assert await resolver.resolve(token) is None


@pytest.mark.asyncio
async def test_store_failure_propagates(make_user, db):
    class BrokenRedis:
        async def exists(self, *keys):
            raise ConnectionError("redis down")

    user = await make_user("alice")
    token, _ = create_session_token(str(user.id))
    resolver = SessionResolver(TokenIdentityProvider(db=db, redis=BrokenRedis()))
    with pytest.raises(ConnectionError):
        await resolver.resolve(token)
