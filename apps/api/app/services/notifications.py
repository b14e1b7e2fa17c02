"""
Change notification port.

Services publish through an EventPublisher and never hold connections
themselves. ConnectionHub fans events out to dashboard WebSocket clients;
delivery is best-effort and at-most-once, with no replay for late joiners.
"""
import asyncio
import logging
import threading
from datetime import date, datetime, timezone
from typing import Optional, Protocol
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)

WORKSHEET_UPDATED = "worksheet:updated"


class EventPublisher(Protocol):
    def publish(self, event: str, payload: dict) -> None:
        ...


class RecordingPublisher:
    """Keeps published events in memory (tests, scripts)."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def publish(self, event: str, payload: dict) -> None:
        self.events.append((event, payload))


class ConnectionHub:
    def __init__(self):
        self._connections: set[WebSocket] = set()
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        with self._lock:
            self._connections.add(websocket)
        logger.info("Dashboard client connected (%d open)", self.connection_count)

    def disconnect(self, websocket: WebSocket) -> None:
        with self._lock:
            self._connections.discard(websocket)
        logger.info("Dashboard client disconnected (%d open)", self.connection_count)

    def publish(self, event: str, payload: dict) -> None:
        # Sync route handlers run in a worker thread; hand the sends to the server loop
        with self._lock:
            targets = list(self._connections)
        if not targets or self._loop is None or self._loop.is_closed():
            return
        message = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat(), **payload}
        for websocket in targets:
            asyncio.run_coroutine_threadsafe(self._send(websocket, message), self._loop)

    async def _send(self, websocket: WebSocket, message: dict) -> None:
        try:
            await websocket.send_json(message)
        except Exception:
            logger.warning("Dropping dashboard client after failed send", exc_info=True)
            self.disconnect(websocket)


hub = ConnectionHub()


def get_publisher() -> EventPublisher:
    return hub


def _jsonable(value):
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def emit_worksheet_update(
    publisher: Optional[EventPublisher],
    *,
    group_id,
    work_date,
    affected_workers: int,
    work_hour: Optional[int] = None,
) -> None:
    """Fire-and-forget; a failed publish is logged and never fails the write."""
    if publisher is None:
        return
    payload = {
        "group_id": _jsonable(group_id),
        "date": _jsonable(work_date),
        "affected_workers": affected_workers,
    }
    if work_hour is not None:
        payload["work_hour"] = work_hour
    try:
        publisher.publish(WORKSHEET_UPDATED, payload)
    except Exception:
        logger.warning("Failed to publish %s for group %s", WORKSHEET_UPDATED, payload["group_id"], exc_info=True)
