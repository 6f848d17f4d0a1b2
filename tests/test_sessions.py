"""
Session manager tests: token issuance, the verification order for incoming
tokens, expiry against the store record, and the three session stores.
"""
import base64
import json
import logging
from datetime import datetime, timedelta, timezone

import jwt
import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import delete

from app.config import settings
from app.errors import BadTokenError, StorageError, UnauthenticatedError
from app.models import AuthSession, User
from app.repositories.base import StoredSession
from app.repositories.memory import InMemorySessionStore, InMemoryUserRepository
from app.repositories.redis_sessions import RedisSessionStore
from app.repositories.sql import SqlSessionStore, SqlUserRepository
from app.sessions import SessionManager
from app.tokens import decode_token

PASSWORD = "correct-horse"


class FakeRedis:
    """Dict-backed stand-in for the three ``redis.asyncio`` calls the store makes."""

    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, str] = {}
        self.ttl: dict[str, int] = {}
        self.fail = fail

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.ttl[key] = ex

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def delete(self, key):
        self._check()
        return int(self.data.pop(key, None) is not None)


class FailingDeleteStore(InMemorySessionStore):
    async def delete(self, token: str) -> None:
        raise StorageError("fail to delete session")


def _claims(user, **overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "user": user.model_dump(),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=7)).timestamp()),
    }
    claims.update(overrides)
    return claims


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


@pytest_asyncio.fixture
async def memory_manager(clock):
    users = InMemoryUserRepository()
    manager = SessionManager(InMemorySessionStore(), users, clock=clock)
    user = await users.register("alice", PASSWORD)
    return manager, user


# ---------------------------------------------------------------------------
# Create / check
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_then_check_resolves_user(memory_manager):
    manager, user = memory_manager
    token = await manager.create(user)
    session = await manager.check_header(f"Bearer {token}")
    assert session.token == token
    assert session.user == user


@pytest.mark.asyncio
async def test_token_carries_user_and_lifetime(memory_manager, clock):
    manager, user = memory_manager
    token = await manager.create(user)
    claims = decode_token(token, settings.SECRET_KEY, settings.TOKEN_ALGORITHM)
    assert claims["user"] == {"id": user.id, "username": user.username}
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600
    assert claims["iat"] == int(clock.now.timestamp())


@pytest.mark.asyncio
async def test_each_login_gets_distinct_token(memory_manager):
    manager, user = memory_manager
    assert await manager.create(user) != await manager.create(user)


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, "", "abc", "Token abc", "bearer abc", "Bearer "])
async def test_missing_or_malformed_header(memory_manager, header):
    manager, _ = memory_manager
    with pytest.raises(UnauthenticatedError):
        await manager.check_header(header)


@pytest.mark.asyncio
async def test_unknown_but_valid_token(memory_manager):
    manager, user = memory_manager
    token = jwt.encode(_claims(user), settings.SECRET_KEY, algorithm="HS256")
    with pytest.raises(UnauthenticatedError):
        await manager.get(token)


# ---------------------------------------------------------------------------
# Bad tokens
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_wrong_secret(memory_manager):
    manager, user = memory_manager
    token = jwt.encode(_claims(user), "some-other-secret-0123456789abcdef", algorithm="HS256")
    with pytest.raises(BadTokenError):
        await manager.get(token)


@pytest.mark.asyncio
async def test_other_hmac_algorithm_rejected(memory_manager):
    manager, user = memory_manager
    token = jwt.encode(_claims(user), settings.SECRET_KEY, algorithm="HS512")
    with pytest.raises(BadTokenError):
        await manager.get(token)


@pytest.mark.asyncio
async def test_unsigned_token_rejected(memory_manager):
    manager, user = memory_manager
    token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(_claims(user))}."
    with pytest.raises(BadTokenError):
        await manager.get(token)


@pytest.mark.asyncio
async def test_garbage_token_rejected(memory_manager):
    manager, _ = memory_manager
    with pytest.raises(BadTokenError):
        await manager.check_header("Bearer not-a-jwt")


@pytest.mark.asyncio
async def test_missing_exp_rejected(memory_manager):
    manager, user = memory_manager
    claims = _claims(user)
    del claims["exp"]
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm="HS256")
    with pytest.raises(BadTokenError):
        await manager.get(token)


@pytest.mark.asyncio
@pytest.mark.parametrize("exp", ["tomorrow", True, None])
async def test_malformed_exp_rejected(memory_manager, exp):
    manager, user = memory_manager
    token = jwt.encode(_claims(user, exp=exp), settings.SECRET_KEY, algorithm="HS256")
    with pytest.raises(BadTokenError):
        await manager.get(token)


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_expired_session_is_unauthenticated_and_removed(memory_manager, clock):
    manager, user = memory_manager
    token = await manager.create(user)

    clock.advance(days=7, seconds=1)
    with pytest.raises(UnauthenticatedError):
        await manager.get(token)
    assert await manager.store.get(token) is None


@pytest.mark.asyncio
async def test_session_valid_until_expiry(memory_manager, clock):
    manager, user = memory_manager
    token = await manager.create(user)
    clock.advance(days=6, hours=23)
    assert (await manager.get(token)).user == user


@pytest.mark.asyncio
async def test_failed_cleanup_is_logged_not_raised(clock, caplog):
    users = InMemoryUserRepository()
    manager = SessionManager(FailingDeleteStore(), users, clock=clock)
    token = await manager.create(await users.register("alice", PASSWORD))

    clock.advance(days=8)
    with caplog.at_level(logging.ERROR, logger="app.sessions"):
        with pytest.raises(UnauthenticatedError):
            await manager.get(token)

    records = [
        r for r in caplog.records if r.name == "app.sessions" and r.levelno >= logging.ERROR
    ]
    assert [r.getMessage() for r in records] == ["Failed to delete expired session"]
    assert records[0].exc_info[0] is StorageError


@pytest.mark.asyncio
async def test_memory_store_sweeps_expired_on_insert(clock):
    store = InMemorySessionStore(clock=clock)

    def record(token, days):
        return StoredSession(token=token, user_id="u", expires_at=clock.now + timedelta(days=days))

    await store.insert(record("short", 1))
    await store.insert(record("long", 7))

    clock.advance(days=2)
    await store.insert(record("fresh", 7))

    assert await store.get("short") is None
    assert await store.get("long") is not None
    assert await store.get("fresh") is not None


# ---------------------------------------------------------------------------
# Stores that keep only the user id
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sql_store_refetches_user(db_session, clock):
    users = SqlUserRepository(db_session)
    manager = SessionManager(SqlSessionStore(db_session), users, clock=clock)
    user = await users.register("alice", PASSWORD)
    token = await manager.create(user)

    record = await manager.store.get(token)
    assert record.user is None
    assert record.expires_at.tzinfo is not None
    assert (await manager.get(token)).user == user


@pytest.mark.asyncio
async def test_sql_store_expired_row_deleted(db_session, clock):
    users = SqlUserRepository(db_session)
    manager = SessionManager(SqlSessionStore(db_session), users, clock=clock)
    token = await manager.create(await users.register("alice", PASSWORD))

    clock.advance(days=8)
    with pytest.raises(UnauthenticatedError):
        await manager.get(token)
    assert await db_session.get(AuthSession, token) is None


@pytest.mark.asyncio
async def test_deleted_user_is_unauthenticated(db_session, clock):
    users = SqlUserRepository(db_session)
    manager = SessionManager(SqlSessionStore(db_session), users, clock=clock)
    user = await users.register("alice", PASSWORD)
    token = await manager.create(user)

    await db_session.execute(delete(User).where(User.id == user.id))
    with pytest.raises(UnauthenticatedError):
        await manager.get(token)


@pytest.mark.asyncio
async def test_redis_store_round_trip(clock):
    redis = FakeRedis()
    users = InMemoryUserRepository()
    manager = SessionManager(RedisSessionStore(redis, clock=clock), users, clock=clock)
    user = await users.register("alice", PASSWORD)
    token = await manager.create(user)

    key = f"session:{token}"
    assert json.loads(redis.data[key])["user_id"] == user.id
    assert 0 < redis.ttl[key] <= 7 * 24 * 3600
    assert (await manager.get(token)).user == user

    await manager.store.delete(token)
    assert key not in redis.data


@pytest.mark.asyncio
async def test_redis_errors_are_storage_errors():
    store = RedisSessionStore(FakeRedis(fail=True))
    record = StoredSession(
        token="t", user_id="u", expires_at=datetime.now(timezone.utc) + timedelta(days=1)
    )
    with pytest.raises(StorageError):
        await store.insert(record)
    with pytest.raises(StorageError):
        await store.get("t")


@pytest.mark.asyncio
async def test_redis_corrupt_record():
    redis = FakeRedis()
    redis.data["session:t"] = "{not json"
    with pytest.raises(StorageError):
        await RedisSessionStore(redis).get("t")


@pytest.mark.asyncio
async def test_redis_ttl_follows_injected_clock(clock):
    clock.advance(days=-5)
    redis = FakeRedis()
    store = RedisSessionStore(redis, clock=clock)
    await store.insert(
        StoredSession(token="t", user_id="u", expires_at=clock.now + timedelta(days=7))
    )
    assert redis.ttl["session:t"] == 7 * 24 * 3600
