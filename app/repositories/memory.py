"""
Process-local repositories.

Posts live in a map keyed by generated id and share one reader-writer lock:
pure reads take the shared side, every mutation (including the view count
bump of ``get_by_id``) takes the exclusive side for its whole
read-modify-write. Callers always receive ``PostResponse`` snapshots, never
the stored objects.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Dict, List, Optional

from app import posts, voting
from app.errors import AlreadyExistsError, BadCredentialsError, NoSuchUserError, PostNotFoundError
from app.locks import ReadWriteLock
from app.models import Comment, Post, User
from app.repositories.base import StoredSession
from app.schemas import PostResponse, UserResponse
from app.security import hash_password, verify_password


def _snapshot(post: Post) -> PostResponse:
    return PostResponse.model_validate(post)


class InMemoryPostRepository:
    def __init__(self) -> None:
        self._posts: Dict[str, Post] = {}
        self._lock = ReadWriteLock()

    def _get(self, post_id: str) -> Post:
        post = self._posts.get(post_id)
        if post is None:
            raise PostNotFoundError()
        return post

    async def _select(self, predicate: Callable[[Post], bool]) -> List[PostResponse]:
        async with self._lock.read():
            return [_snapshot(p) for p in self._posts.values() if predicate(p)]

    async def get_all(self) -> List[PostResponse]:
        return await self._select(lambda p: True)

    async def get_by_category(self, category: str) -> List[PostResponse]:
        return await self._select(lambda p: p.category == category)

    async def get_by_author(self, username: str) -> List[PostResponse]:
        return await self._select(lambda p: p.author_username == username)

    async def get_by_id(self, post_id: str) -> PostResponse:
        async with self._lock.write():
            post = self._get(post_id)
            post.views += 1
            return _snapshot(post)

    async def add(self, post: Post) -> PostResponse:
        async with self._lock.write():
            posts.stamp(post)
            self._posts[post.id] = post
            return _snapshot(post)

    async def add_comment(self, post_id: str, comment: Comment) -> PostResponse:
        async with self._lock.write():
            post = self._get(post_id)
            posts.stamp(comment)
            post.comments.append(comment)
            return _snapshot(post)

    async def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> PostResponse:
        async with self._lock.write():
            post = self._get(post_id)
            posts.remove_comment(post, comment_id, user_id)
            return _snapshot(post)

    async def _vote(self, post_id: str, user_id: str, apply: Callable[[Post, str], None]) -> PostResponse:
        async with self._lock.write():
            post = self._get(post_id)
            apply(post, user_id)
            return _snapshot(post)

    async def upvote(self, post_id: str, user_id: str) -> PostResponse:
        return await self._vote(post_id, user_id, voting.upvote)

    async def downvote(self, post_id: str, user_id: str) -> PostResponse:
        return await self._vote(post_id, user_id, voting.downvote)

    async def unvote(self, post_id: str, user_id: str) -> PostResponse:
        return await self._vote(post_id, user_id, voting.unvote)

    async def delete(self, post_id: str, user_id: str) -> None:
        async with self._lock.write():
            post = self._get(post_id)
            posts.ensure_author(post, user_id)
            del self._posts[post_id]


class InMemoryUserRepository:
    def __init__(self, bcrypt_rounds: int | None = None) -> None:
        self._by_username: Dict[str, User] = {}
        self._lock = asyncio.Lock()
        self._rounds = bcrypt_rounds

    async def register(self, username: str, password: str) -> UserResponse:
        # Hash before taking the lock; bcrypt is deliberately slow.
        password_hash = await hash_password(password, self._rounds)
        async with self._lock:
            if username in self._by_username:
                raise AlreadyExistsError()
            user = User(id=posts.new_id(), username=username, password_hash=password_hash)
            self._by_username[username] = user
        return UserResponse.model_validate(user)

    async def authorize(self, username: str, password: str) -> UserResponse:
        async with self._lock:
            user = self._by_username.get(username)
        if user is None:
            raise NoSuchUserError()
        if not await verify_password(password, user.password_hash):
            raise BadCredentialsError()
        return UserResponse.model_validate(user)

    async def get_by_id(self, user_id: str) -> UserResponse:
        async with self._lock:
            for user in self._by_username.values():
                if user.id == user_id:
                    return UserResponse.model_validate(user)
        raise NoSuchUserError()


class InMemorySessionStore:
    """
    Volatile token table; keeps the user snapshot taken at issuance.

    Records past their expiration are swept on every insert, so tokens that
    are never presented again do not pile up.
    """

    def __init__(self, clock: Callable[[], datetime] = posts.utcnow) -> None:
        self._sessions: Dict[str, StoredSession] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _sweep(self) -> None:
        now = self._clock()
        expired = [t for t, r in self._sessions.items() if r.expires_at <= now]
        for token in expired:
            del self._sessions[token]

    async def insert(self, record: StoredSession) -> None:
        async with self._lock:
            self._sweep()
            self._sessions[record.token] = record

    async def get(self, token: str) -> Optional[StoredSession]:
        async with self._lock:
            return self._sessions.get(token)

    async def delete(self, token: str) -> None:
        async with self._lock:
            self._sessions.pop(token, None)
