"""Room-scoped and point-to-point delivery on top of the transport port."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from meetrelay.core.ports import TransportPort
from meetrelay.core.registry import ConnectionRegistry

LOGGER = logging.getLogger(__name__)


class RoomBroadcaster:
    """Fire-and-forget fan-out to the connections bound to a meeting."""

    def __init__(self, registry: ConnectionRegistry, transport: TransportPort) -> None:
        self._registry = registry
        self._transport = transport

    async def send_to_connection(self, connection_id: str, event: str, payload: Any) -> None:
        await self._transport.send(connection_id, event, payload)

    async def broadcast_to_room(
        self,
        meeting_code: str,
        event: str,
        payload: Any,
        exclude: Optional[str] = None,
    ) -> None:
        """Deliver an event to every room member except `exclude`."""

        targets = [conn for conn in self._registry.connections_in(meeting_code) if conn != exclude]
        if not targets:
            return

        results = await asyncio.gather(
            *(self._transport.send(conn, event, payload) for conn in targets),
            return_exceptions=True,
        )
        for conn, result in zip(targets, results):
            if isinstance(result, Exception):
                LOGGER.warning("Delivery of %s to %s failed: %s", event, conn, result)
