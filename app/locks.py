import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ReadWriteLock:
    """
    asyncio reader-writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers do not block new readers, which is acceptable for
    the short critical sections of the in-memory repositories.

    Release updates the holder counts without awaiting, so a task cancelled
    on its way out never leaves the lock held. Only the wake-up of waiters
    needs the condition, and it runs shielded.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writing = False

    async def _notify_all(self) -> None:
        async with self._cond:
            self._cond.notify_all()

    async def _wake_waiters(self) -> None:
        await asyncio.shield(self._notify_all())

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writing)
            self._readers += 1
        try:
            yield
        finally:
            self._readers -= 1
            if self._readers == 0:
                await self._wake_waiters()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writing and self._readers == 0)
            self._writing = True
        try:
            yield
        finally:
            self._writing = False
            await self._wake_waiters()
