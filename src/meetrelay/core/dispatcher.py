"""Inbound event routing.

This module is transport-agnostic. The transport hands it an event name, a
decoded payload and the originating connection id; the dispatcher validates
the payload, calls the presence, signaling or chat component, and turns any
failure into an `error` event for that connection. Nothing raised here ever
reaches the transport's receive loop.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Awaitable, Callable, Dict, Optional

from meetrelay.core.broadcaster import RoomBroadcaster
from meetrelay.core.chat import CHAT_MESSAGE, ChatRelay
from meetrelay.core.errors import InvalidEvent, PersistenceUnavailable
from meetrelay.core.presence import PresenceCoordinator
from meetrelay.core.registry import ConnectionRegistry
from meetrelay.core.signaling import ANSWER, ICE_CANDIDATE, OFFER, SignalingRelay

LOGGER = logging.getLogger(__name__)

JOIN_MEETING = "join-meeting"
LEAVE_MEETING = "leave-meeting"
ERROR = "error"

Handler = Callable[[str, Dict[str, Any]], Awaitable[None]]


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    # Numeric meeting codes are common in hand-written clients.
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidEvent(f"{key} is required")
    return value.strip()


def _require_present(data: Dict[str, Any], key: str) -> Any:
    if data.get(key) is None:
        raise InvalidEvent(f"{key} is required")
    return data[key]


class EventDispatcher:
    """Validate inbound events and route them to the core components."""

    def __init__(
        self,
        presence: PresenceCoordinator,
        signaling: SignalingRelay,
        chat: ChatRelay,
        registry: ConnectionRegistry,
        broadcaster: RoomBroadcaster,
    ) -> None:
        self._presence = presence
        self._signaling = signaling
        self._chat = chat
        self._registry = registry
        self._broadcaster = broadcaster
        self._handlers: Dict[str, Handler] = {
            JOIN_MEETING: self._on_join,
            LEAVE_MEETING: self._on_leave,
            OFFER: self._on_offer,
            ANSWER: self._on_answer,
            ICE_CANDIDATE: self._on_ice_candidate,
            CHAT_MESSAGE: self._on_chat_message,
        }

    async def dispatch(self, connection_id: str, event: str, data: Any) -> None:
        """Handle one inbound event from a connection."""

        try:
            handler = self._handlers.get(event)
            if handler is None:
                raise InvalidEvent(f"Unknown event: {event}")
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise InvalidEvent(f"{event} payload must be an object")
            await handler(connection_id, data)
        except InvalidEvent as exc:
            LOGGER.info("Rejected %s from %s: %s", event, connection_id, exc)
            await self.report_error(connection_id, str(exc))
        except PersistenceUnavailable as exc:
            LOGGER.warning("Persistence unavailable during %s from %s: %s", event, connection_id, exc)
            await self.report_error(connection_id, "Meeting storage is unavailable, please retry")
        except Exception:
            LOGGER.exception("Error while handling %s from %s", event, connection_id)
            await self.report_error(connection_id, "Internal error")

    async def disconnect(self, connection_id: str) -> None:
        """Handle a transport-level close. There is no one left to notify of failures."""

        try:
            await self._presence.disconnect(connection_id)
        except PersistenceUnavailable as exc:
            LOGGER.warning("Persistence unavailable during disconnect of %s: %s", connection_id, exc)
        except Exception:
            LOGGER.exception("Error while disconnecting %s", connection_id)

    async def report_error(self, connection_id: str, message: str) -> None:
        await self._broadcaster.send_to_connection(connection_id, ERROR, {"message": message})

    async def _on_join(self, connection_id: str, data: Dict[str, Any]) -> None:
        meeting_code = _require_str(data, "meetingCode")
        user_name = _require_str(data, "userName")
        await self._presence.join(connection_id, meeting_code, user_name)

    async def _on_leave(self, connection_id: str, data: Dict[str, Any]) -> None:
        meeting_code: Optional[str]
        if data.get("meetingCode") is not None:
            meeting_code = _require_str(data, "meetingCode")
        else:
            binding = self._registry.lookup(connection_id)
            meeting_code = binding.meeting_code if binding else None
        if meeting_code is None:
            return
        await self._presence.leave(connection_id, meeting_code)

    async def _on_offer(self, connection_id: str, data: Dict[str, Any]) -> None:
        target_id = _require_str(data, "targetId")
        await self._signaling.relay_offer(connection_id, target_id, _require_present(data, "sdp"))

    async def _on_answer(self, connection_id: str, data: Dict[str, Any]) -> None:
        target_id = _require_str(data, "targetId")
        await self._signaling.relay_answer(connection_id, target_id, _require_present(data, "sdp"))

    async def _on_ice_candidate(self, connection_id: str, data: Dict[str, Any]) -> None:
        target_id = _require_str(data, "targetId")
        candidate = _require_present(data, "candidate")
        await self._signaling.relay_ice_candidate(connection_id, target_id, candidate)

    async def _on_chat_message(self, connection_id: str, data: Dict[str, Any]) -> None:
        meeting_code = _require_str(data, "meetingCode")
        message = data.get("message")
        if not isinstance(message, dict):
            raise InvalidEvent("message is required")
        if not isinstance(message.get("content"), str):
            raise InvalidEvent("message.content is required")
        timestamp = message.get("timestamp")
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))):
            raise InvalidEvent("message.timestamp must be a number")
        if isinstance(timestamp, float) and not math.isfinite(timestamp):
            raise InvalidEvent("message.timestamp must be finite")

        binding = self._registry.lookup(connection_id)
        sender_name = binding.display_name if binding else None
        await self._chat.send_message(
            meeting_code,
            message,
            sender_id=connection_id,
            sender_name=sender_name,
        )
