from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from app.models import Comment, Post
from app.schemas import PostResponse, UserResponse


class PostRepository(Protocol):
    """
    Abstraction over post persistence.

    Every method that touches a single post returns a ``PostResponse``
    snapshot of its state after the operation, or raises
    ``PostNotFoundError`` / ``CommentNotFoundError`` / ``ForbiddenError``.
    Storage failures surface as ``StorageError``.
    """

    async def get_all(self) -> List[PostResponse]:
        ...

    async def get_by_id(self, post_id: str) -> PostResponse:
        """Return the post and count the read: views grow by exactly one."""

        ...

    async def get_by_category(self, category: str) -> List[PostResponse]:
        ...

    async def get_by_author(self, username: str) -> List[PostResponse]:
        ...

    async def add(self, post: Post) -> PostResponse:
        """Persist a post built by ``app.posts.build_post``, assigning id and timestamp."""

        ...

    async def add_comment(self, post_id: str, comment: Comment) -> PostResponse:
        ...

    async def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> PostResponse:
        ...

    async def upvote(self, post_id: str, user_id: str) -> PostResponse:
        ...

    async def downvote(self, post_id: str, user_id: str) -> PostResponse:
        ...

    async def unvote(self, post_id: str, user_id: str) -> PostResponse:
        ...

    async def delete(self, post_id: str, user_id: str) -> None:
        ...


class UserRepository(Protocol):
    """
    Abstraction over user accounts.

    Password hashes never leave the repository; callers only see
    ``UserResponse`` snapshots.
    """

    async def register(self, username: str, password: str) -> UserResponse:
        """Create a user or raise ``AlreadyExistsError``."""

        ...

    async def authorize(self, username: str, password: str) -> UserResponse:
        """Return the user or raise ``NoSuchUserError`` / ``BadCredentialsError``."""

        ...

    async def get_by_id(self, user_id: str) -> UserResponse:
        """Return the user or raise ``NoSuchUserError``."""

        ...


@dataclass
class StoredSession:
    """Lookup record kept for every issued token."""

    token: str
    user_id: str
    expires_at: datetime
    # Snapshot taken at issuance. Stores that persist only the user id
    # return None here and the session manager re-fetches the user.
    user: Optional[UserResponse] = None


class SessionStore(Protocol):
    """Token-keyed session records with an expiration instant."""

    async def insert(self, record: StoredSession) -> None:
        ...

    async def get(self, token: str) -> Optional[StoredSession]:
        ...

    async def delete(self, token: str) -> None:
        ...
