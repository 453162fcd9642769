"""FastAPI application: meeting REST routes plus the signaling WebSocket.

All routing decisions live in the core; this module only wires the core
components to FastAPI, translates core errors into HTTP responses, and runs
the per-connection receive loop.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from typing import AsyncIterator, Optional, Sequence
import uuid

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meetrelay.adapters.schemas import (
    CreateMeetingResponse,
    ErrorResponse,
    HealthResponse,
    MeetingInfoResponse,
    MessagesResponse,
)
from meetrelay.adapters.websocket_transport import WebSocketTransport, decode_frame
from meetrelay.core.broadcaster import RoomBroadcaster
from meetrelay.core.chat import ChatRelay
from meetrelay.core.config import MeetingConfig
from meetrelay.core.dispatcher import EventDispatcher
from meetrelay.core.errors import InvalidEvent, MeetingCodeExhausted, MeetingNotFound, PersistenceUnavailable
from meetrelay.core.locks import MeetingLocks
from meetrelay.core.meetings import MeetingService
from meetrelay.core.ports import MeetingStorePort
from meetrelay.core.presence import PresenceCoordinator
from meetrelay.core.registry import ConnectionRegistry
from meetrelay.core.signaling import SignalingRelay

LOGGER = logging.getLogger(__name__)

CONNECTED = "connected"


@dataclass
class RelayServices:
    """Everything one relay instance needs, wired together."""

    registry: ConnectionRegistry
    transport: WebSocketTransport
    dispatcher: EventDispatcher
    meetings: MeetingService


def build_services(store: MeetingStorePort, meeting_config: MeetingConfig) -> RelayServices:
    registry = ConnectionRegistry()
    transport = WebSocketTransport()
    broadcaster = RoomBroadcaster(registry, transport)
    # Presence and chat share locks so every save for a code is serialized.
    locks = MeetingLocks()
    dispatcher = EventDispatcher(
        presence=PresenceCoordinator(store, registry, broadcaster, locks),
        signaling=SignalingRelay(broadcaster),
        chat=ChatRelay(store, broadcaster, locks),
        registry=registry,
        broadcaster=broadcaster,
    )
    return RelayServices(
        registry=registry,
        transport=transport,
        dispatcher=dispatcher,
        meetings=MeetingService(store, meeting_config, registry=registry),
    )


async def _sweep_periodically(meetings: MeetingService, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await meetings.sweep_inactive()
        except PersistenceUnavailable as exc:
            LOGGER.warning("Inactive meeting sweep failed: %s", exc)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def create_app(
    store: MeetingStorePort,
    meeting_config: MeetingConfig = MeetingConfig(),
    cors_origins: Sequence[str] = ("*",),
) -> FastAPI:
    """Build the FastAPI application around a ready-to-use meeting store."""

    services = build_services(store, meeting_config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        sweeper: Optional[asyncio.Task] = None
        if meeting_config.sweep_interval_minutes > 0:
            sweeper = asyncio.create_task(
                _sweep_periodically(services.meetings, meeting_config.sweep_interval_minutes * 60)
            )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                try:
                    await sweeper
                except asyncio.CancelledError:
                    pass

    app = FastAPI(title="meetrelay", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", connections=len(services.transport))

    @app.post("/api/meetings", response_model=CreateMeetingResponse)
    async def create_meeting():
        try:
            code = await services.meetings.create_meeting()
        except (MeetingCodeExhausted, PersistenceUnavailable) as exc:
            LOGGER.warning("Meeting creation failed: %s", exc)
            return _error(503, "Could not create meeting, please retry")
        return CreateMeetingResponse(meetingCode=code)

    @app.get(
        "/api/meetings/{meeting_code}",
        response_model=MeetingInfoResponse,
        response_model_exclude_none=True,
    )
    async def get_meeting(meeting_code: str):
        try:
            info = await services.meetings.get_meeting_info(meeting_code)
        except MeetingNotFound:
            return MeetingInfoResponse(exists=False)
        except PersistenceUnavailable as exc:
            LOGGER.warning("Meeting lookup failed for %s: %s", meeting_code, exc)
            return _error(503, "Meeting storage is unavailable")
        return MeetingInfoResponse(exists=True, **info)

    @app.get("/api/meetings/{meeting_code}/messages", response_model=MessagesResponse)
    async def get_messages(meeting_code: str):
        try:
            messages = await services.meetings.get_messages(meeting_code)
        except MeetingNotFound:
            return _error(404, "Meeting not found")
        except PersistenceUnavailable as exc:
            LOGGER.warning("Message history lookup failed for %s: %s", meeting_code, exc)
            return _error(503, "Meeting storage is unavailable")
        return MessagesResponse(messages=messages)

    @app.websocket("/ws")
    async def signaling_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        services.transport.register(connection_id, websocket)
        LOGGER.info("New client connected: %s", connection_id)
        await services.transport.send(connection_id, CONNECTED, {"connectionId": connection_id})

        # Frames are handled one at a time, so a disconnect always runs after
        # every event this connection already sent.
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                try:
                    event, data = decode_frame(raw)
                except InvalidEvent as exc:
                    await services.dispatcher.report_error(connection_id, str(exc))
                    continue
                await services.dispatcher.dispatch(connection_id, event, data)
        finally:
            services.transport.unregister(connection_id)
            await services.dispatcher.disconnect(connection_id)
            LOGGER.info("Client disconnected: %s", connection_id)

    return app
