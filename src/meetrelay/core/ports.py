"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage and transport adapters so
that presence, signaling, and chat logic can run against different backends.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

from meetrelay.core.models import Meeting


class MeetingStorePort(Protocol):
    """Meeting persistence required by the core.

    Every operation may raise PersistenceUnavailable.
    """

    async def get_or_create(self, meeting_code: str) -> Meeting:
        ...

    async def find_by_code(self, meeting_code: str) -> Optional[Meeting]:
        ...

    async def save(self, meeting: Meeting) -> None:
        ...

    async def create(self, meeting: Meeting) -> bool:
        ...

    async def delete_inactive(self, cutoff_ms: int, keep: Iterable[str] = ()) -> int:
        """Delete meetings idle since before cutoff_ms, skipping codes in keep."""

        ...


class TransportPort(Protocol):
    """Outbound delivery to a single live connection.

    Sending to an unknown or closed connection must be a silent no-op.
    """

    async def send(self, connection_id: str, event: str, payload: Any) -> None:
        ...
