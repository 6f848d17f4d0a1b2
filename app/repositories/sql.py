"""
SQLAlchemy repositories bound to one request's ``AsyncSession``.

Design notes
------------
- Relationships are declared ``lazy="noload"``; every query that needs the
  ledger or the comments loads them with ``selectinload``.
- Vote and comment mutations load the post with ``SELECT ... FOR UPDATE`` and
  ``populate_existing`` so concurrent voters on the same post are serialized
  by the database instead of overwriting each other's ledger.
- Repository methods flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency. The one exception is
  ``SqlSessionStore.delete``, whose cleanup must survive the 401 that follows.
- Driver errors are wrapped in ``StorageError`` with the failing action.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timezone
from typing import Callable, Iterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app import posts, voting
from app.errors import (
    AlreadyExistsError,
    BadCredentialsError,
    NoSuchUserError,
    PostNotFoundError,
    StorageError,
)
from app.models import AuthSession, Comment, Post, User
from app.repositories.base import StoredSession
from app.schemas import PostResponse, UserResponse
from app.security import hash_password, verify_password

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"fail to {action}") from exc


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class SqlPostRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @staticmethod
    def _with_children():
        return select(Post).options(selectinload(Post.votes), selectinload(Post.comments))

    async def _load(self, post_id: str, lock: bool = False) -> Post:
        q = self._with_children().where(Post.id == post_id)
        if lock:
            q = q.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(q)
        post = result.scalar_one_or_none()
        if post is None:
            raise PostNotFoundError()
        return post

    async def _list(self, *criteria) -> List[PostResponse]:
        q = self._with_children()
        if criteria:
            q = q.where(*criteria)
        with _storage_errors("list posts"):
            result = await self.db.execute(q.order_by(Post.created_at.desc()))
            return [PostResponse.model_validate(p) for p in result.scalars().all()]

    async def get_all(self) -> List[PostResponse]:
        return await self._list()

    async def get_by_category(self, category: str) -> List[PostResponse]:
        return await self._list(Post.category == category)

    async def get_by_author(self, username: str) -> List[PostResponse]:
        return await self._list(Post.author_username == username)

    async def get_by_id(self, post_id: str) -> PostResponse:
        with _storage_errors(f"read post {post_id}"):
            # Atomic increment so concurrent readers never lose a view.
            result = await self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(views=Post.views + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise PostNotFoundError()
            q = (
                self._with_children()
                .where(Post.id == post_id)
                .execution_options(populate_existing=True)
            )
            post = (await self.db.execute(q)).scalar_one()
            return PostResponse.model_validate(post)

    async def add(self, post: Post) -> PostResponse:
        posts.stamp(post)
        with _storage_errors("insert post"):
            self.db.add(post)
            await self.db.flush()
        return PostResponse.model_validate(post)

    async def add_comment(self, post_id: str, comment: Comment) -> PostResponse:
        with _storage_errors(f"add comment to post {post_id}"):
            post = await self._load(post_id, lock=True)
            posts.stamp(comment)
            post.comments.append(comment)
            await self.db.flush()
            return PostResponse.model_validate(post)

    async def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> PostResponse:
        with _storage_errors(f"delete comment {comment_id}"):
            post = await self._load(post_id, lock=True)
            posts.remove_comment(post, comment_id, user_id)
            await self.db.flush()
            return PostResponse.model_validate(post)

    async def _vote(self, post_id: str, user_id: str, apply: Callable[[Post, str], None]) -> PostResponse:
        with _storage_errors(f"update votes of post {post_id}"):
            post = await self._load(post_id, lock=True)
            apply(post, user_id)
            await self.db.flush()
            return PostResponse.model_validate(post)

    async def upvote(self, post_id: str, user_id: str) -> PostResponse:
        return await self._vote(post_id, user_id, voting.upvote)

    async def downvote(self, post_id: str, user_id: str) -> PostResponse:
        return await self._vote(post_id, user_id, voting.downvote)

    async def unvote(self, post_id: str, user_id: str) -> PostResponse:
        return await self._vote(post_id, user_id, voting.unvote)

    async def delete(self, post_id: str, user_id: str) -> None:
        with _storage_errors(f"delete post {post_id}"):
            post = await self._load(post_id, lock=True)
            posts.ensure_author(post, user_id)
            await self.db.delete(post)
            await self.db.flush()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class SqlUserRepository:
    def __init__(self, db: AsyncSession, bcrypt_rounds: int | None = None) -> None:
        self.db = db
        self._rounds = bcrypt_rounds

    async def _find(self, *criteria) -> Optional[User]:
        with _storage_errors("query users"):
            result = await self.db.execute(select(User).where(*criteria))
            return result.scalar_one_or_none()

    async def register(self, username: str, password: str) -> UserResponse:
        if await self._find(User.username == username) is not None:
            raise AlreadyExistsError()

        user = User(
            id=posts.new_id(),
            username=username,
            password_hash=await hash_password(password, self._rounds),
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same name.
            raise AlreadyExistsError() from exc
        except SQLAlchemyError as exc:
            raise StorageError("fail to insert user") from exc
        return UserResponse.model_validate(user)

    async def authorize(self, username: str, password: str) -> UserResponse:
        user = await self._find(User.username == username)
        if user is None:
            raise NoSuchUserError()
        if not await verify_password(password, user.password_hash):
            raise BadCredentialsError()
        return UserResponse.model_validate(user)

    async def get_by_id(self, user_id: str) -> UserResponse:
        user = await self._find(User.id == user_id)
        if user is None:
            raise NoSuchUserError()
        return UserResponse.model_validate(user)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class SqlSessionStore:
    """
    Durable session rows keyed by token.

    Only the user id is stored, so ``get`` returns records without a user
    snapshot and the session manager re-fetches the current user.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def insert(self, record: StoredSession) -> None:
        with _storage_errors("insert session"):
            self.db.add(
                AuthSession(
                    token=record.token,
                    user_id=record.user_id,
                    expires_at=record.expires_at,
                )
            )
            await self.db.flush()

    async def get(self, token: str) -> Optional[StoredSession]:
        with _storage_errors("read session"):
            row = await self.db.get(AuthSession, token)
        if row is None:
            return None
        expires_at = row.expires_at
        # SQLite hands back naive datetimes even for timezone-aware columns.
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return StoredSession(token=row.token, user_id=row.user_id, expires_at=expires_at)

    async def delete(self, token: str) -> None:
        """Delete the row and commit immediately."""
        with _storage_errors("delete session"):
            await self.db.execute(delete(AuthSession).where(AuthSession.token == token))
            await self.db.commit()
        logger.debug("Session row removed for token ending %s", token[-8:])
