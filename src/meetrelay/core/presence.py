"""Presence coordination: join, leave, and disconnect transitions.

Each transition reconciles the ephemeral connection registry with the
durable meeting record, then notifies the room. The order is strict:

1) Read the meeting (creating it on join)
2) Mutate the participant list
3) Persist
4) Update the registry binding
5) Notify the room and the originating connection

Reads and saves for one meeting code run under a per-code lock, so two
concurrent joins cannot overwrite each other's participant entry. A
PersistenceUnavailable raised by the store propagates before the registry
is touched, which leaves the binding as it was and makes a retry possible.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from meetrelay.core.broadcaster import RoomBroadcaster
from meetrelay.core.locks import MeetingLocks
from meetrelay.core.models import Meeting, Participant, now_ms
from meetrelay.core.ports import MeetingStorePort
from meetrelay.core.registry import ConnectionRegistry

LOGGER = logging.getLogger(__name__)

USER_JOINED = "user-joined"
USER_LEFT = "user-left"
MEETING_JOINED = "meeting-joined"


class PresenceCoordinator:
    """Owns participant membership for every meeting this process serves."""

    def __init__(
        self,
        store: MeetingStorePort,
        registry: ConnectionRegistry,
        broadcaster: RoomBroadcaster,
        locks: Optional[MeetingLocks] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._registry = registry
        self._broadcaster = broadcaster
        self._locks = locks or MeetingLocks()
        self._clock = clock

    async def join(self, connection_id: str, meeting_code: str, display_name: str) -> Meeting:
        """Add a connection to a meeting, creating the meeting if unknown."""

        previous = self._registry.lookup(connection_id)
        if previous is not None and previous.meeting_code != meeting_code:
            # Switching meetings without an explicit leave.
            await self.leave(connection_id, previous.meeting_code)

        async with self._locks.hold(meeting_code):
            meeting = await self._store.get_or_create(meeting_code)
            # A reconnect without a clean leave may have left a stale entry.
            meeting.remove_participant(connection_id)
            meeting.participants.append(
                Participant(
                    connection_id=connection_id,
                    display_name=display_name,
                    joined_at=self._clock(),
                )
            )
            await self._store.save(meeting)

            # Bind before notifying so a racing disconnect finds the binding.
            self._registry.bind(connection_id, meeting_code, display_name)

            participants = meeting.participants_payload()
            await self._broadcaster.broadcast_to_room(
                meeting_code,
                USER_JOINED,
                {"userId": connection_id, "userName": display_name, "participants": participants},
                exclude=connection_id,
            )
            await self._broadcaster.send_to_connection(
                connection_id,
                MEETING_JOINED,
                {"meetingCode": meeting_code, "participants": participants},
            )

        LOGGER.info(
            "User %s (%s) joined meeting %s (%s participants)",
            display_name,
            connection_id,
            meeting_code,
            len(meeting.participants),
        )
        return meeting

    async def leave(self, connection_id: str, meeting_code: str) -> bool:
        """Remove a connection from a meeting.

        Returns False when there was nothing to do: the meeting is unknown
        or the connection is no longer a participant.
        """

        async with self._locks.hold(meeting_code):
            meeting = await self._store.find_by_code(meeting_code)
            if meeting is None or not meeting.has_participant(connection_id):
                self._unbind_from(connection_id, meeting_code)
                return False

            meeting.remove_participant(connection_id)
            await self._store.save(meeting)

            await self._broadcaster.broadcast_to_room(
                meeting_code,
                USER_LEFT,
                {"userId": connection_id, "participants": meeting.participants_payload()},
                exclude=connection_id,
            )
            self._unbind_from(connection_id, meeting_code)

        LOGGER.info("Connection %s left meeting %s", connection_id, meeting_code)
        if not meeting.participants:
            # Kept for the inactivity sweep.
            LOGGER.info("Meeting %s is empty", meeting_code)
        return True

    async def disconnect(self, connection_id: str) -> bool:
        """Transport-level close: leave whatever meeting the registry knows."""

        binding = self._registry.lookup(connection_id)
        if binding is None:
            return False
        try:
            return await self.leave(connection_id, binding.meeting_code)
        finally:
            # A closed connection can never retry, so never keep its binding.
            self._unbind_from(connection_id, binding.meeting_code)

    def _unbind_from(self, connection_id: str, meeting_code: str) -> None:
        binding = self._registry.lookup(connection_id)
        if binding is not None and binding.meeting_code == meeting_code:
            self._registry.unbind(connection_id)
