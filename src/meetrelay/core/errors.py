"""Error kinds raised by the core.

All of them are scoped to the single event that triggered them; none is
fatal to the process.
"""

from __future__ import annotations


class MeetRelayError(Exception):
    """Base class for meetrelay errors."""


class PersistenceUnavailable(MeetRelayError):
    """The meeting store failed or timed out."""


class MeetingNotFound(MeetRelayError):
    """No meeting exists for the requested code."""

    def __init__(self, meeting_code: str) -> None:
        super().__init__(f"Meeting not found: {meeting_code}")
        self.meeting_code = meeting_code


class MeetingCodeExhausted(MeetRelayError):
    """Every generated meeting code collided with an existing meeting."""


class InvalidEvent(MeetRelayError):
    """An inbound event is unknown or carries a malformed payload."""
