"""
Session manager: issues bearer tokens and resolves them back to users.

A token is a signed JWT carrying the user snapshot, ``iat`` and ``exp``.
Signature alone is not enough: every token must also have a live record in
the configured ``SessionStore``, which is what makes server-side revocation
and expiry possible.

Check order for an incoming token:

1. ``Authorization: Bearer <token>`` must be present  -> else Unauthenticated
2. signature, algorithm and ``exp`` claim must verify  -> else BadToken
3. a store record must exist and not be expired        -> else Unauthenticated
4. the user must still exist (stores without snapshot) -> else Unauthenticated
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from app.config import settings
from app.errors import NoSuchUserError, UnauthenticatedError
from app.repositories.base import SessionStore, StoredSession, UserRepository
from app.schemas import UserResponse
from app.tokens import decode_token, encode_token

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class Session:
    token: str
    user: UserResponse


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        users: UserRepository,
        secret: str | None = None,
        algorithm: str | None = None,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.users = users
        self._secret = secret or settings.SECRET_KEY
        self._algorithm = algorithm or settings.TOKEN_ALGORITHM
        self._ttl = ttl or timedelta(days=settings.TOKEN_TTL_DAYS)
        self._clock = clock

    async def create(self, user: UserResponse) -> str:
        """Issue a token for *user* and record it in the store."""
        issued_at = self._clock()
        expires_at = issued_at + self._ttl
        token = encode_token(
            {
                "user": user.model_dump(),
                "iat": int(issued_at.timestamp()),
                "exp": int(expires_at.timestamp()),
                "jti": uuid.uuid4().hex,
            },
            self._secret,
            self._algorithm,
        )
        await self.store.insert(
            StoredSession(token=token, user_id=user.id, expires_at=expires_at, user=user)
        )
        logger.info("Created session for user %s", user.id)
        return token

    async def check(self, request) -> Session:
        """Resolve the session of *request* from its ``Authorization`` header."""
        return await self.check_header(request.headers.get("Authorization"))

    async def check_header(self, authorization: Optional[str]) -> Session:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise UnauthenticatedError()
        token = authorization[len(BEARER_PREFIX):]
        if not token:
            raise UnauthenticatedError()
        return await self.get(token)

    async def get(self, token: str) -> Session:
        decode_token(token, self._secret, self._algorithm)

        record = await self.store.get(token)
        if record is None:
            raise UnauthenticatedError()

        if record.expires_at <= self._clock():
            await self._discard(token)
            raise UnauthenticatedError()

        user = record.user
        if user is None:
            try:
                user = await self.users.get_by_id(record.user_id)
            except NoSuchUserError:
                logger.warning("Session refers to missing user %s", record.user_id)
                raise UnauthenticatedError()
        return Session(token=token, user=user)

    async def _discard(self, token: str) -> None:
        # Best effort: the request fails as unauthenticated either way.
        try:
            await self.store.delete(token)
        except Exception:
            logger.exception("Failed to delete expired session")
