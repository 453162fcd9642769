"""Meeting lifecycle operations used by the HTTP layer."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Optional

from meetrelay.core.codes import generate_meeting_code, resolve_alphabet
from meetrelay.core.config import MeetingConfig
from meetrelay.core.errors import MeetingCodeExhausted, MeetingNotFound
from meetrelay.core.models import Meeting, now_ms
from meetrelay.core.ports import MeetingStorePort
from meetrelay.core.registry import ConnectionRegistry

LOGGER = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


class MeetingService:
    """Create meetings and answer read-only queries about them."""

    def __init__(
        self,
        store: MeetingStorePort,
        config: MeetingConfig = MeetingConfig(),
        clock: Callable[[], int] = now_ms,
        code_generator: Optional[Callable[[], str]] = None,
        registry: Optional[ConnectionRegistry] = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._config = config
        self._clock = clock
        if code_generator is None:
            alphabet = resolve_alphabet(config.code_alphabet)
            code_generator = partial(generate_meeting_code, config.code_length, alphabet)
        self._generate_code = code_generator

    async def create_meeting(self) -> str:
        """Persist an empty meeting under a fresh code and return the code.

        Collisions are retried with a new code up to max_code_attempts.
        """

        for attempt in range(1, self._config.max_code_attempts + 1):
            code = self._generate_code()
            if await self._store.create(Meeting.new(code, self._clock())):
                LOGGER.info("Created meeting %s", code)
                return code
            LOGGER.debug("Meeting code collision on %s (attempt %s)", code, attempt)

        raise MeetingCodeExhausted(
            f"No free meeting code after {self._config.max_code_attempts} attempts"
        )

    async def get_meeting_info(self, meeting_code: str) -> dict[str, Any]:
        meeting = await self._require(meeting_code)
        return {
            "meetingCode": meeting.code,
            "participants": meeting.participants_payload(),
            "createdAt": meeting.created_at,
            "lastActivity": meeting.last_activity,
        }

    async def get_messages(self, meeting_code: str) -> list[dict[str, Any]]:
        meeting = await self._require(meeting_code)
        return meeting.messages_payload()

    async def sweep_inactive(self, now: Optional[int] = None) -> int:
        """Delete meetings idle for longer than the inactivity window.

        Meetings that still have live connections in the registry are kept,
        however old their last write.
        """

        current = now if now is not None else self._clock()
        cutoff = current - self._config.inactivity_hours * HOUR_MS
        keep = self._registry.active_meeting_codes() if self._registry is not None else []
        removed = await self._store.delete_inactive(cutoff, keep)
        if removed:
            LOGGER.info("Cleaned up %s inactive meetings", removed)
        return removed

    async def _require(self, meeting_code: str) -> Meeting:
        meeting = await self._store.find_by_code(meeting_code)
        if meeting is None:
            raise MeetingNotFound(meeting_code)
        return meeting
