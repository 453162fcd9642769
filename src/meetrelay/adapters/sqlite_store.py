"""SQLite meeting store adapter.

Implements the core MeetingStorePort on a single key-value style table: one
row per meeting code, with participants and messages kept as JSON
documents. sqlite3 is blocking, so every call runs in a worker thread.

Each call gets a deadline. The worker enforces it itself: a progress
handler aborts long statements, and a transaction that finishes past the
deadline is rolled back instead of committed. The caller always waits for
the worker, so a call reported as timed out has written nothing and no
write lands after the caller has moved on.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from contextvars import ContextVar
import json
import logging
import sqlite3
import time
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

from meetrelay.core.errors import PersistenceUnavailable
from meetrelay.core.models import Meeting, now_ms

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Monotonic deadline of the store call running in the current context.
# asyncio.to_thread copies the context into the worker thread.
_DEADLINE: ContextVar[Optional[float]] = ContextVar("meetrelay_sqlite_deadline", default=None)

# SQLite VM instructions between deadline checks.
_PROGRESS_STEPS = 100


class _DeadlineExceeded(Exception):
    """The worker ran past its deadline; the transaction was rolled back."""


class SQLiteMeetingStore:
    """Thin SQLite wrapper that satisfies the MeetingStorePort contract."""

    def __init__(
        self,
        db_path: str,
        timeout_seconds: float = 5.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._db_path = db_path
        self._timeout = timeout_seconds
        self._clock = clock

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        deadline = _DEADLINE.get()
        busy_timeout = self._timeout
        if deadline is not None:
            busy_timeout = max(deadline - time.monotonic(), 0.0)
        conn = sqlite3.connect(self._db_path, timeout=busy_timeout)
        conn.row_factory = sqlite3.Row
        if deadline is not None:
            conn.set_progress_handler(lambda: int(time.monotonic() > deadline), _PROGRESS_STEPS)
        try:
            yield conn
            if deadline is not None and time.monotonic() > deadline:
                raise _DeadlineExceeded()
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - meetings: one document per meeting code
        """

        with self._connect() as conn:
            # Fields:
            # - meeting_code: shareable code (PRIMARY KEY)
            # - created_at / last_activity: epoch milliseconds
            # - participants: JSON array in display order
            # - messages: JSON array in append order
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS meetings (
                    meeting_code TEXT PRIMARY KEY,
                    created_at INTEGER NOT NULL,
                    last_activity INTEGER NOT NULL,
                    participants TEXT NOT NULL,
                    messages TEXT NOT NULL
                )
                """
            )
            # The inactivity sweep scans by last_activity.
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_meetings_last_activity ON meetings (last_activity)"
            )

    async def get_or_create(self, meeting_code: str) -> Meeting:
        return await self._call(self._get_or_create, meeting_code, self._clock())

    async def find_by_code(self, meeting_code: str) -> Optional[Meeting]:
        return await self._call(self._find, meeting_code)

    async def save(self, meeting: Meeting) -> None:
        """Upsert the full meeting document, stamping last_activity."""

        meeting.last_activity = self._clock()
        await self._call(self._upsert, meeting)

    async def create(self, meeting: Meeting) -> bool:
        """Insert a new meeting; return False if the code is taken."""

        return await self._call(self._insert_if_absent, meeting)

    async def delete_inactive(self, cutoff_ms: int, keep: Iterable[str] = ()) -> int:
        """Delete meetings idle since before the cutoff, except codes in `keep`."""

        return await self._call(self._delete_before, cutoff_ms, sorted(set(keep)))

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        deadline = time.monotonic() + self._timeout
        token = _DEADLINE.set(deadline)
        try:
            # No wait_for: the worker enforces the deadline and rolls back,
            # so returning early could only report a timeout for a write
            # that still commits.
            return await asyncio.to_thread(func, *args)
        except _DeadlineExceeded as exc:
            LOGGER.warning("SQLite %s exceeded %ss and was rolled back", func.__name__, self._timeout)
            raise PersistenceUnavailable(
                f"Meeting store timed out after {self._timeout}s"
            ) from exc
        except sqlite3.Error as exc:
            LOGGER.warning("SQLite error in %s: %s", func.__name__, exc)
            if time.monotonic() > deadline:
                raise PersistenceUnavailable(
                    f"Meeting store timed out after {self._timeout}s"
                ) from exc
            raise PersistenceUnavailable(f"Meeting store error: {exc}") from exc
        finally:
            _DEADLINE.reset(token)

    @staticmethod
    def _row_to_meeting(row: sqlite3.Row) -> Meeting:
        return Meeting.from_document(
            {
                "meetingCode": row["meeting_code"],
                "createdAt": row["created_at"],
                "lastActivity": row["last_activity"],
                "participants": json.loads(row["participants"]),
                "messages": json.loads(row["messages"]),
            }
        )

    @staticmethod
    def _row_values(meeting: Meeting) -> tuple:
        document = meeting.to_document()
        return (
            meeting.code,
            meeting.created_at,
            meeting.last_activity,
            json.dumps(document["participants"]),
            json.dumps(document["messages"]),
        )

    def _find(self, meeting_code: str) -> Optional[Meeting]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM meetings WHERE meeting_code = ?",
                (meeting_code,),
            ).fetchone()
        return self._row_to_meeting(row) if row else None

    def _get_or_create(self, meeting_code: str, now: int) -> Meeting:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO meetings (
                    meeting_code, created_at, last_activity, participants, messages
                ) VALUES (?, ?, ?, '[]', '[]')
                """,
                (meeting_code, now, now),
            )
            row = conn.execute(
                "SELECT * FROM meetings WHERE meeting_code = ?",
                (meeting_code,),
            ).fetchone()
        return self._row_to_meeting(row)

    def _upsert(self, meeting: Meeting) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO meetings (
                    meeting_code, created_at, last_activity, participants, messages
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(meeting_code) DO UPDATE SET
                    last_activity = excluded.last_activity,
                    participants = excluded.participants,
                    messages = excluded.messages
                """,
                self._row_values(meeting),
            )

    def _insert_if_absent(self, meeting: Meeting) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO meetings (
                    meeting_code, created_at, last_activity, participants, messages
                ) VALUES (?, ?, ?, ?, ?)
                """,
                self._row_values(meeting),
            )
            return cur.rowcount == 1

    def _delete_before(self, cutoff_ms: int, keep: list[str]) -> int:
        query = "DELETE FROM meetings WHERE last_activity < ?"
        params: list[Any] = [cutoff_ms]
        if keep:
            query += f" AND meeting_code NOT IN ({', '.join('?' for _ in keep)})"
            params.extend(keep)
        with self._connect() as conn:
            cur = conn.execute(query, params)
            return cur.rowcount
