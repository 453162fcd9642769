"""Point-to-point WebRTC signaling relay.

Offers, answers and ICE candidates are forwarded to the target connection
only. Nothing is persisted and room membership is not checked; a target
that is not connected simply never receives the payload.
"""

from __future__ import annotations

from typing import Any

from meetrelay.core.broadcaster import RoomBroadcaster

OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"


class SignalingRelay:
    """Best-effort, at-most-once forwarding keyed by target connection id."""

    def __init__(self, broadcaster: RoomBroadcaster) -> None:
        self._broadcaster = broadcaster

    async def relay_offer(self, from_id: str, target_id: str, sdp: Any) -> None:
        await self._broadcaster.send_to_connection(target_id, OFFER, {"fromId": from_id, "sdp": sdp})

    async def relay_answer(self, from_id: str, target_id: str, sdp: Any) -> None:
        await self._broadcaster.send_to_connection(target_id, ANSWER, {"fromId": from_id, "sdp": sdp})

    async def relay_ice_candidate(self, from_id: str, target_id: str, candidate: Any) -> None:
        await self._broadcaster.send_to_connection(
            target_id,
            ICE_CANDIDATE,
            {"fromId": from_id, "candidate": candidate},
        )
