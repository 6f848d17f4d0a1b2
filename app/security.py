"""Password hashing with bcrypt, run off the event loop."""
import asyncio

import bcrypt

from app.config import settings


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def _verify(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode(), password_hash.encode())


async def hash_password(password: str, rounds: int | None = None) -> str:
    return await asyncio.to_thread(_hash, password, rounds or settings.BCRYPT_ROUNDS)


async def verify_password(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(_verify, password, password_hash)
