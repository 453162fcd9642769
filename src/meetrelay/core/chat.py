"""Chat relay: persist a message to meeting history, then fan it out."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Optional

from meetrelay.core.broadcaster import RoomBroadcaster
from meetrelay.core.locks import MeetingLocks
from meetrelay.core.models import Message, now_ms
from meetrelay.core.ports import MeetingStorePort

LOGGER = logging.getLogger(__name__)

CHAT_MESSAGE = "chat-message"


class ChatRelay:
    """Appends chat messages and broadcasts them to the whole room."""

    def __init__(
        self,
        store: MeetingStorePort,
        broadcaster: RoomBroadcaster,
        locks: Optional[MeetingLocks] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._locks = locks or MeetingLocks()
        self._clock = clock

    async def send_message(
        self,
        meeting_code: str,
        message: dict[str, Any],
        sender_id: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        """Append and broadcast a message; return what was sent.

        Messages for unknown meetings are dropped and None is returned.
        The sender receives the broadcast too, so every client renders chat
        through the same path.
        """

        async with self._locks.hold(meeting_code):
            meeting = await self._store.find_by_code(meeting_code)
            if meeting is None:
                LOGGER.debug("Dropping chat message for unknown meeting %s", meeting_code)
                return None

            outgoing = dict(message)
            # History stores epoch ms as int; broadcast the same value.
            outgoing["timestamp"] = int(outgoing.get("timestamp") or self._clock())
            if not outgoing.get("id"):
                outgoing["id"] = uuid.uuid4().hex
            if sender_id and not outgoing.get("senderId"):
                outgoing["senderId"] = sender_id
            if sender_name and not outgoing.get("senderName"):
                outgoing["senderName"] = sender_name

            meeting.messages.append(Message.from_dict(outgoing))
            await self._store.save(meeting)

            await self._broadcaster.broadcast_to_room(meeting_code, CHAT_MESSAGE, outgoing)

        LOGGER.debug("Chat message %s relayed in meeting %s", outgoing["id"], meeting_code)
        return outgoing
