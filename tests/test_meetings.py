from __future__ import annotations

import asyncio
from typing import Iterator

import pytest

from meetrelay.adapters.memory_store import InMemoryMeetingStore
from meetrelay.core.config import MeetingConfig
from meetrelay.core.errors import MeetingCodeExhausted, MeetingNotFound
from meetrelay.core.meetings import HOUR_MS, MeetingService
from meetrelay.core.models import Meeting, Message, Participant
from meetrelay.core.registry import ConnectionRegistry


def _scripted(codes: list[str]):
    iterator: Iterator[str] = iter(codes)
    return lambda: next(iterator)


def test_create_meeting_persists_empty_meeting() -> None:
    store = InMemoryMeetingStore()
    service = MeetingService(store, clock=lambda: 1000)

    code = asyncio.run(service.create_meeting())

    assert len(code) == 6 and code.isdigit()
    meeting = asyncio.run(store.find_by_code(code))
    assert meeting.created_at == 1000
    assert meeting.participants == [] and meeting.messages == []


def test_create_meeting_retries_on_collision() -> None:
    store = InMemoryMeetingStore()
    asyncio.run(store.create(Meeting.new("111111", 1)))
    asyncio.run(store.create(Meeting.new("222222", 1)))
    service = MeetingService(store, code_generator=_scripted(["111111", "222222", "333333"]))

    assert asyncio.run(service.create_meeting()) == "333333"
    assert len(store) == 3


def test_create_meeting_gives_up_after_max_attempts() -> None:
    store = InMemoryMeetingStore()
    asyncio.run(store.create(Meeting.new("111111", 1)))
    service = MeetingService(
        store,
        MeetingConfig(max_code_attempts=3),
        code_generator=lambda: "111111",
    )

    with pytest.raises(MeetingCodeExhausted):
        asyncio.run(service.create_meeting())


def test_meeting_info_and_messages() -> None:
    store = InMemoryMeetingStore()
    meeting = Meeting.new("482913", 1000)
    meeting.participants.append(Participant("a", "Alice", 1500))
    meeting.messages.append(Message("m1", "a", "Alice", "hi", 1600))
    asyncio.run(store.create(meeting))
    service = MeetingService(store)

    info = asyncio.run(service.get_meeting_info("482913"))
    assert info == {
        "meetingCode": "482913",
        "participants": [{"id": "a", "name": "Alice", "joinedAt": 1500}],
        "createdAt": 1000,
        "lastActivity": 1000,
    }
    assert asyncio.run(service.get_messages("482913")) == [
        {"id": "m1", "senderId": "a", "senderName": "Alice", "content": "hi", "timestamp": 1600}
    ]


def test_unknown_meeting_raises_not_found() -> None:
    service = MeetingService(InMemoryMeetingStore())

    with pytest.raises(MeetingNotFound):
        asyncio.run(service.get_meeting_info("000000"))
    with pytest.raises(MeetingNotFound):
        asyncio.run(service.get_messages("000000"))


def test_sweep_removes_only_inactive_meetings() -> None:
    now = 100 * HOUR_MS
    store = InMemoryMeetingStore()
    asyncio.run(store.create(Meeting.new("old", now - 25 * HOUR_MS)))
    asyncio.run(store.create(Meeting.new("fresh", now - 1 * HOUR_MS)))
    service = MeetingService(store, MeetingConfig(inactivity_hours=24))

    assert asyncio.run(service.sweep_inactive(now=now)) == 1
    assert asyncio.run(store.find_by_code("old")) is None
    assert asyncio.run(store.find_by_code("fresh")) is not None


def test_sweep_keeps_meetings_with_live_connections() -> None:
    now = 100 * HOUR_MS
    store = InMemoryMeetingStore()
    asyncio.run(store.create(Meeting.new("quiet-call", now - 30 * HOUR_MS)))
    asyncio.run(store.create(Meeting.new("abandoned", now - 30 * HOUR_MS)))
    registry = ConnectionRegistry()
    registry.bind("a", "quiet-call", "Alice")
    service = MeetingService(store, MeetingConfig(inactivity_hours=24), registry=registry)

    assert asyncio.run(service.sweep_inactive(now=now)) == 1
    assert asyncio.run(store.find_by_code("quiet-call")) is not None
    assert asyncio.run(store.find_by_code("abandoned")) is None

    registry.unbind("a")
    assert asyncio.run(service.sweep_inactive(now=now)) == 1
    assert asyncio.run(store.find_by_code("quiet-call")) is None
