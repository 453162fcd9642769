"""In-memory connection registry.

Maps a live connection id to the meeting it is in. Nothing here awaits, so
each call is atomic with respect to other events on the event loop. The
registry is rebuilt from nothing on restart.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from meetrelay.core.models import Binding


class ConnectionRegistry:
    """Connection id -> (meeting code, display name), with a room index."""

    def __init__(self) -> None:
        self._bindings: Dict[str, Binding] = {}
        # meeting code -> connection ids in bind order (dict keys keep order)
        self._rooms: Dict[str, Dict[str, None]] = {}

    def bind(self, connection_id: str, meeting_code: str, display_name: str) -> None:
        """Upsert a binding, replacing any prior one for the connection."""

        self._detach(connection_id)
        self._bindings[connection_id] = Binding(meeting_code=meeting_code, display_name=display_name)
        self._rooms.setdefault(meeting_code, {})[connection_id] = None

    def lookup(self, connection_id: str) -> Optional[Binding]:
        return self._bindings.get(connection_id)

    def unbind(self, connection_id: str) -> None:
        """Remove a binding; no-op if absent."""

        self._detach(connection_id)

    def active_meeting_codes(self) -> List[str]:
        """Codes with at least one bound connection."""

        return list(self._rooms)

    def connections_in(self, meeting_code: str) -> List[str]:
        """Return the room: every connection bound to the code."""

        return list(self._rooms.get(meeting_code, {}))

    def __len__(self) -> int:
        return len(self._bindings)

    def _detach(self, connection_id: str) -> None:
        binding = self._bindings.pop(connection_id, None)
        if binding is None:
            return
        room = self._rooms.get(binding.meeting_code)
        if room is None:
            return
        room.pop(connection_id, None)
        if not room:
            del self._rooms[binding.meeting_code]
