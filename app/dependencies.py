"""
FastAPI dependencies that pick the storage variants for a request.

``settings.STORAGE_BACKEND`` selects posts and users (``database`` or
``memory``); ``settings.SESSION_BACKEND`` selects the session store
(``database``, ``memory`` or ``redis``). Settings are read per request, so a
test can switch backends by assigning to ``settings``.

The in-memory variants are process-wide singletons; the database variants
are built around the request's ``AsyncSession``.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.redis_client import redis_manager
from app.repositories.base import PostRepository, SessionStore, UserRepository
from app.repositories.memory import (
    InMemoryPostRepository,
    InMemorySessionStore,
    InMemoryUserRepository,
)
from app.repositories.redis_sessions import RedisSessionStore
from app.repositories.sql import SqlPostRepository, SqlSessionStore, SqlUserRepository
from app.sessions import Session, SessionManager


class MemoryBackends:
    """Holder for the process-local repositories."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.posts = InMemoryPostRepository()
        self.users = InMemoryUserRepository()
        self.sessions = InMemorySessionStore()


memory = MemoryBackends()


async def get_post_repository(db: AsyncSession = Depends(get_db)) -> PostRepository:
    if settings.STORAGE_BACKEND == "memory":
        return memory.posts
    return SqlPostRepository(db)


async def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    if settings.STORAGE_BACKEND == "memory":
        return memory.users
    return SqlUserRepository(db)


async def get_session_store(db: AsyncSession = Depends(get_db)) -> SessionStore:
    if settings.SESSION_BACKEND == "memory":
        return memory.sessions
    if settings.SESSION_BACKEND == "redis":
        return RedisSessionStore(redis_manager.client)
    return SqlSessionStore(db)


async def get_session_manager(
    store: SessionStore = Depends(get_session_store),
    users: UserRepository = Depends(get_user_repository),
) -> SessionManager:
    return SessionManager(store, users)


async def get_current_session(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> Session:
    """Resolve the bearer token of *request*; raises 401 errors otherwise."""
    return await manager.check(request)
