from __future__ import annotations

import asyncio
from typing import Any

from meetrelay.adapters.websocket_transport import WebSocketTransport
from meetrelay.core.broadcaster import RoomBroadcaster
from meetrelay.core.registry import ConnectionRegistry
from meetrelay.core.signaling import SignalingRelay


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Any]] = []

    async def send(self, connection_id: str, event: str, payload: Any) -> None:
        self.sent.append((connection_id, event, payload))


def _relay_with_room() -> tuple[SignalingRelay, FakeTransport]:
    registry = ConnectionRegistry()
    for conn, name in (("a", "Alice"), ("b", "Bob"), ("c", "Carol")):
        registry.bind(conn, "482913", name)
    transport = FakeTransport()
    return SignalingRelay(RoomBroadcaster(registry, transport)), transport


def test_offer_goes_to_target_only() -> None:
    relay, transport = _relay_with_room()

    asyncio.run(relay.relay_offer("a", "b", {"type": "offer", "sdp": "v=0"}))

    assert transport.sent == [("b", "offer", {"fromId": "a", "sdp": {"type": "offer", "sdp": "v=0"}})]


def test_answer_and_candidate_are_tagged_with_sender() -> None:
    relay, transport = _relay_with_room()

    asyncio.run(relay.relay_answer("b", "a", "answer-sdp"))
    asyncio.run(relay.relay_ice_candidate("c", "a", {"candidate": "candidate:1 1 udp"}))

    assert transport.sent == [
        ("a", "answer", {"fromId": "b", "sdp": "answer-sdp"}),
        ("a", "ice-candidate", {"fromId": "c", "candidate": {"candidate": "candidate:1 1 udp"}}),
    ]


def test_relay_does_not_require_membership() -> None:
    relay, transport = _relay_with_room()

    asyncio.run(relay.relay_offer("outsider", "a", "sdp"))

    assert transport.sent == [("a", "offer", {"fromId": "outsider", "sdp": "sdp"})]


def test_unknown_target_is_silently_dropped() -> None:
    registry = ConnectionRegistry()
    relay = SignalingRelay(RoomBroadcaster(registry, WebSocketTransport()))

    asyncio.run(relay.relay_offer("a", "gone", "sdp"))
    asyncio.run(relay.relay_ice_candidate("a", "gone", {"candidate": ""}))
