"""In-memory meeting store adapter.

Keeps serialized documents rather than live objects, so a Meeting handed to
a caller is detached until it is saved, the same as with a real database.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

from meetrelay.core.models import Meeting, now_ms


class InMemoryMeetingStore:
    """Dict-backed MeetingStorePort for tests and single-process runs."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._documents: Dict[str, dict[str, Any]] = {}
        self._clock = clock

    async def get_or_create(self, meeting_code: str) -> Meeting:
        if meeting_code not in self._documents:
            self._documents[meeting_code] = Meeting.new(meeting_code, self._clock()).to_document()
        return Meeting.from_document(self._documents[meeting_code])

    async def find_by_code(self, meeting_code: str) -> Optional[Meeting]:
        document = self._documents.get(meeting_code)
        return Meeting.from_document(document) if document else None

    async def save(self, meeting: Meeting) -> None:
        meeting.last_activity = self._clock()
        self._documents[meeting.code] = meeting.to_document()

    async def create(self, meeting: Meeting) -> bool:
        if meeting.code in self._documents:
            return False
        self._documents[meeting.code] = meeting.to_document()
        return True

    async def delete_inactive(self, cutoff_ms: int, keep: Iterable[str] = ()) -> int:
        kept = set(keep)
        stale = [
            code
            for code, doc in self._documents.items()
            if doc["lastActivity"] < cutoff_ms and code not in kept
        ]
        for code in stale:
            del self._documents[code]
        return len(stale)

    def __len__(self) -> int:
        return len(self._documents)
