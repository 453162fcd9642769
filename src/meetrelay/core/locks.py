"""Per-meeting serialization of read-modify-write cycles."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class MeetingLocks:
    """Hand out one asyncio.Lock per meeting code.

    Locks are created on demand and dropped once no task holds or waits on
    them, so idle meetings cost nothing.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, meeting_code: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(meeting_code, asyncio.Lock())
        self._users[meeting_code] = self._users.get(meeting_code, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[meeting_code] -= 1
            if not self._users[meeting_code]:
                del self._users[meeting_code]
                del self._locks[meeting_code]

    def __len__(self) -> int:
        return len(self._locks)
