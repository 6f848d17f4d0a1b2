"""
Session store on Redis.

Each session is one key ``session:<token>`` holding ``{"user_id",
"expires_at"}`` as JSON, written with a TTL equal to the remaining session
lifetime so Redis drops expired rows on its own.
"""
from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Callable, Optional

from redis.exceptions import RedisError

from app.errors import StorageError
from app.posts import utcnow
from app.repositories.base import StoredSession

KEY_PREFIX = "session:"


class RedisSessionStore:
    def __init__(
        self,
        client,
        key_prefix: str = KEY_PREFIX,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._redis = client
        self._prefix = key_prefix
        self._clock = clock

    def _key(self, token: str) -> str:
        return f"{self._prefix}{token}"

    async def insert(self, record: StoredSession) -> None:
        remaining = (record.expires_at - self._clock()).total_seconds()
        payload = json.dumps(
            {"user_id": record.user_id, "expires_at": record.expires_at.isoformat()}
        )
        try:
            await self._redis.set(self._key(record.token), payload, ex=max(1, math.ceil(remaining)))
        except RedisError as exc:
            raise StorageError("fail to insert session") from exc

    async def get(self, token: str) -> Optional[StoredSession]:
        try:
            data = await self._redis.get(self._key(token))
        except RedisError as exc:
            raise StorageError("fail to read session") from exc
        if data is None:
            return None
        try:
            fields = json.loads(data)
            return StoredSession(
                token=token,
                user_id=fields["user_id"],
                expires_at=datetime.fromisoformat(fields["expires_at"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise StorageError("corrupt session record") from exc

    async def delete(self, token: str) -> None:
        try:
            await self._redis.delete(self._key(token))
        except RedisError as exc:
            raise StorageError("fail to delete session") from exc
