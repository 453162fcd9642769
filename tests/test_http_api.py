from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from meetrelay.adapters.http_api import create_app
from meetrelay.adapters.memory_store import InMemoryMeetingStore
from meetrelay.core.config import MeetingConfig
from meetrelay.core.models import Meeting


def _client(store: InMemoryMeetingStore) -> TestClient:
    app = create_app(store, MeetingConfig(sweep_interval_minutes=0))
    return TestClient(app)


def _join(ws, code: str, name: str) -> None:
    ws.send_json({"event": "join-meeting", "data": {"meetingCode": code, "userName": name}})


def test_create_and_query_meeting() -> None:
    store = InMemoryMeetingStore()
    with _client(store) as client:
        created = client.post("/api/meetings")
        assert created.status_code == 200
        code = created.json()["meetingCode"]
        assert created.json()["success"] is True

        info = client.get(f"/api/meetings/{code}").json()
        assert info["exists"] is True
        assert info["participants"] == []
        assert isinstance(info["createdAt"], int)

        assert client.get(f"/api/meetings/{code}/messages").json() == {"success": True, "messages": []}


def test_unknown_meeting_routes() -> None:
    with _client(InMemoryMeetingStore()) as client:
        assert client.get("/api/meetings/000000").json() == {"success": True, "exists": False}

        missing = client.get("/api/meetings/000000/messages")
        assert missing.status_code == 404
        assert missing.json() == {"success": False, "error": "Meeting not found"}


def test_create_meeting_reports_exhaustion() -> None:
    store = InMemoryMeetingStore()
    app = create_app(store, MeetingConfig(code_length=1, max_code_attempts=1, sweep_interval_minutes=0))
    for digit in "123456789":
        asyncio.run(store.create(Meeting.new(digit, 1)))

    with TestClient(app) as client:
        response = client.post("/api/meetings")

    assert response.status_code == 503
    assert response.json()["success"] is False


def test_bad_frames_get_error_events() -> None:
    with _client(InMemoryMeetingStore()) as client:
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json()["event"] == "connected"

            ws.send_text("not json")
            assert ws.receive_json() == {"event": "error", "data": {"message": "Frame is not valid JSON"}}

            ws.send_json({"data": {}})
            assert ws.receive_json()["data"]["message"] == "Frame is missing an event name"


def test_meeting_scenario_end_to_end() -> None:
    store = InMemoryMeetingStore()
    with _client(store) as client:
        with client.websocket_connect("/ws") as alice:
            alice_id = alice.receive_json()["data"]["connectionId"]
            _join(alice, "482913", "Alice")

            joined = alice.receive_json()
            assert joined["event"] == "meeting-joined"
            assert joined["data"]["meetingCode"] == "482913"
            assert [(p["id"], p["name"]) for p in joined["data"]["participants"]] == [(alice_id, "Alice")]

            with client.websocket_connect("/ws") as bob:
                bob_id = bob.receive_json()["data"]["connectionId"]
                _join(bob, "482913", "Bob")

                notice = alice.receive_json()
                assert notice["event"] == "user-joined"
                assert notice["data"]["userId"] == bob_id
                assert [p["name"] for p in notice["data"]["participants"]] == ["Alice", "Bob"]

                bob_joined = bob.receive_json()
                assert bob_joined["event"] == "meeting-joined"
                assert [p["name"] for p in bob_joined["data"]["participants"]] == ["Alice", "Bob"]

                # Signaling reaches the target only.
                bob.send_json({"event": "offer", "data": {"targetId": alice_id, "sdp": "v=0"}})
                offer = alice.receive_json()
                assert offer == {"event": "offer", "data": {"fromId": bob_id, "sdp": "v=0"}}

                bob.send_json(
                    {
                        "event": "chat-message",
                        "data": {
                            "meetingCode": "482913",
                            "message": {"id": "m1", "senderId": bob_id, "senderName": "Bob", "content": "hi"},
                        },
                    }
                )
                for ws in (alice, bob):
                    chat = ws.receive_json()
                    assert chat["event"] == "chat-message"
                    assert chat["data"]["content"] == "hi"
                    assert isinstance(chat["data"]["timestamp"], int)

                history = client.get("/api/meetings/482913/messages").json()["messages"]
                assert len(history) == 1
                assert history[0]["content"] == "hi"

                alice.close()

                left = bob.receive_json()
                assert left["event"] == "user-left"
                assert left["data"]["userId"] == alice_id
                assert [p["name"] for p in left["data"]["participants"]] == ["Bob"]

    meeting = asyncio.run(store.find_by_code("482913"))
    assert meeting is not None
    assert meeting.participants == []
    assert len(meeting.messages) == 1
