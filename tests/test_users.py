"""
User repository tests, run against both the in-memory and the SQL variant.
"""
import asyncio

import pytest
from sqlalchemy import select

from app.errors import AlreadyExistsError, BadCredentialsError, NoSuchUserError
from app.models import User
from app.repositories.memory import InMemoryUserRepository
from app.repositories.sql import SqlUserRepository

PASSWORD = "correct-horse"


@pytest.fixture(params=["memory", "sql"])
def user_repo(request, db_session):
    if request.param == "memory":
        return InMemoryUserRepository()
    return SqlUserRepository(db_session)


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_user(user_repo):
    user = await user_repo.register("alice", PASSWORD)
    assert user.username == "alice"
    assert len(user.id) == 36


@pytest.mark.asyncio
async def test_register_duplicate(user_repo):
    await user_repo.register("alice", PASSWORD)
    with pytest.raises(AlreadyExistsError):
        await user_repo.register("alice", "another-password")


@pytest.mark.asyncio
async def test_concurrent_register_same_name_memory():
    repo = InMemoryUserRepository()
    results = await asyncio.gather(
        *(repo.register("alice", PASSWORD) for _ in range(5)), return_exceptions=True
    )
    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert all(isinstance(r, AlreadyExistsError) for r in results if isinstance(r, Exception))


@pytest.mark.asyncio
async def test_password_is_stored_hashed(db_session):
    repo = SqlUserRepository(db_session)
    await repo.register("alice", PASSWORD)
    stored = (await db_session.execute(select(User).where(User.username == "alice"))).scalar_one()
    assert stored.password_hash != PASSWORD
    assert stored.password_hash.startswith("$2")


# ---------------------------------------------------------------------------
# Authorize
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_authorize(user_repo):
    registered = await user_repo.register("alice", PASSWORD)
    assert await user_repo.authorize("alice", PASSWORD) == registered


@pytest.mark.asyncio
async def test_authorize_wrong_password(user_repo):
    await user_repo.register("alice", PASSWORD)
    with pytest.raises(BadCredentialsError):
        await user_repo.authorize("alice", "wrong-password")


@pytest.mark.asyncio
async def test_authorize_unknown_user(user_repo):
    with pytest.raises(NoSuchUserError):
        await user_repo.authorize("nobody", PASSWORD)


# ---------------------------------------------------------------------------
# Get by id
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_by_id(user_repo):
    alice = await user_repo.register("alice", PASSWORD)
    await user_repo.register("bob", PASSWORD)
    assert await user_repo.get_by_id(alice.id) == alice


@pytest.mark.asyncio
async def test_get_by_id_missing(user_repo):
    with pytest.raises(NoSuchUserError):
        await user_repo.get_by_id("missing")
