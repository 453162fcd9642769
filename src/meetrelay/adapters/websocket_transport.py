"""WebSocket transport adapter.

Owns the live socket for each connection id and implements the core
TransportPort. Frames are JSON objects `{"event": <name>, "data": <payload>}`
in both directions.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Tuple

from fastapi import WebSocket, WebSocketDisconnect

from meetrelay.core.errors import InvalidEvent

LOGGER = logging.getLogger(__name__)


def encode_frame(event: str, payload: Any) -> dict[str, Any]:
    return {"event": event, "data": payload}


def decode_frame(raw: str) -> Tuple[str, Any]:
    """Split an inbound text frame into (event, data)."""

    try:
        frame = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidEvent("Frame is not valid JSON") from exc
    if not isinstance(frame, dict):
        raise InvalidEvent("Frame must be a JSON object")
    event = frame.get("event")
    if not isinstance(event, str) or not event:
        raise InvalidEvent("Frame is missing an event name")
    return event, frame.get("data")


class WebSocketTransport:
    """Connection id -> WebSocket, with best-effort delivery."""

    def __init__(self) -> None:
        self._sockets: Dict[str, WebSocket] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        self._sockets[connection_id] = websocket

    def unregister(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._sockets

    def __len__(self) -> int:
        return len(self._sockets)

    async def send(self, connection_id: str, event: str, payload: Any) -> None:
        """Send one event; unknown or closing connections are skipped."""

        websocket = self._sockets.get(connection_id)
        if websocket is None:
            LOGGER.debug("Dropping %s for unknown connection %s", event, connection_id)
            return
        try:
            await websocket.send_json(encode_frame(event, payload))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            # The receive loop will notice the close and run the disconnect.
            LOGGER.debug("Dropping %s for closing connection %s: %s", event, connection_id, exc)
