"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any transport or storage-specific types. Timestamps are integer
milliseconds since the Unix epoch, which is what browser clients send.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any, List, Optional


def now_ms() -> int:
    """Return the current UTC time in epoch milliseconds."""

    return int(time.time() * 1000)


@dataclass(frozen=True)
class Participant:
    """One connection's membership in a meeting."""

    connection_id: str
    display_name: str
    joined_at: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.connection_id, "name": self.display_name, "joinedAt": self.joined_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Participant":
        return cls(
            connection_id=str(data["id"]),
            display_name=str(data.get("name", "")),
            joined_at=int(data.get("joinedAt") or 0),
        )


@dataclass(frozen=True)
class Message:
    """A single chat utterance persisted in meeting history."""

    id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "senderName": self.sender_name,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(
            id=str(data["id"]),
            sender_id=str(data.get("senderId", "")),
            sender_name=str(data.get("senderName", "")),
            content=str(data.get("content", "")),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class Meeting:
    """Durable meeting record keyed by its shareable code.

    Participants keep insertion order (display order); messages are
    append-only in arrival order.
    """

    code: str
    created_at: int
    last_activity: int
    participants: List[Participant] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)

    @classmethod
    def new(cls, code: str, created_at: Optional[int] = None) -> "Meeting":
        """Create an empty meeting."""

        timestamp = created_at if created_at is not None else now_ms()
        return cls(code=code, created_at=timestamp, last_activity=timestamp)

    def has_participant(self, connection_id: str) -> bool:
        return any(p.connection_id == connection_id for p in self.participants)

    def remove_participant(self, connection_id: str) -> bool:
        """Drop every entry for a connection; return True if one was present."""

        kept = [p for p in self.participants if p.connection_id != connection_id]
        removed = len(kept) != len(self.participants)
        self.participants = kept
        return removed

    def participants_payload(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.participants]

    def messages_payload(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self.messages]

    def to_document(self) -> dict[str, Any]:
        """Serialize to the key-value document stored by adapters."""

        return {
            "meetingCode": self.code,
            "createdAt": self.created_at,
            "lastActivity": self.last_activity,
            "participants": self.participants_payload(),
            "messages": self.messages_payload(),
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Meeting":
        return cls(
            code=str(document["meetingCode"]),
            created_at=int(document["createdAt"]),
            last_activity=int(document.get("lastActivity") or document["createdAt"]),
            participants=[Participant.from_dict(p) for p in document.get("participants", [])],
            messages=[Message.from_dict(m) for m in document.get("messages", [])],
        )


@dataclass(frozen=True)
class Binding:
    """Ephemeral connection-to-meeting binding held by the registry."""

    meeting_code: str
    display_name: str
