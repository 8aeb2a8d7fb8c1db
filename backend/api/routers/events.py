"""
Refresh signal for open dashboards, delivered as Server-Sent Events.

Every successful create/update/delete calls ``publish_change``; each
connected client receives a ``data_changed`` frame and re-fetches its
report snapshot. Signals carry no data the client must keep, so a client
whose buffer is full simply misses the extra ones: one pending
``data_changed`` is enough to trigger the refresh.
"""
import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

_logger = logging.getLogger('timeboard.events')

router = APIRouter(prefix="/api/events", tags=["Events"])

DATA_CHANGED = "data_changed"
_KEEPALIVE_SECONDS = 25.0
_BUFFER_SIZE = 16


@dataclass(eq=False)
class Subscriber:
    """One open event stream: the loop serving it and its pending signals."""
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=_BUFFER_SIZE))

    def offer(self, payload: Dict) -> None:
        # runs on the subscriber's own loop
        if not self.queue.full():
            self.queue.put_nowait(payload)


class ChangeFeed:
    """Thread-safe set of subscribers; writes run in worker threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List[Subscriber] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, loop: asyncio.AbstractEventLoop) -> Subscriber:
        sub = Subscriber(loop)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def send(self, event_type: str, data: Dict) -> int:
        """Hand the event to every subscriber's loop. Returns how many took it."""
        payload = {"type": event_type, "data": data}
        with self._lock:
            targets = list(self._subscribers)
        delivered = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(sub.offer, payload)
            except RuntimeError:
                # loop already closed, the stream is gone
                self.unsubscribe(sub)
                continue
            delivered += 1
        return delivered


feed = ChangeFeed()


def publish_change(entity: str, action: str, record_id: int, **extra) -> int:
    """Announce a create/update/delete so clients re-fetch their snapshot."""
    delivered = feed.send(DATA_CHANGED, {"entity": entity, "action": action, "id": record_id, **extra})
    if delivered:
        _logger.debug("%s %s %s id=%s -> %d clients", DATA_CHANGED, action, entity, record_id, delivered)
    return delivered


def sse_frame(event_type: str, data: Dict) -> str:
    return f"event: {event_type}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def _stream(request: Request, sub: Subscriber) -> AsyncGenerator[str, None]:
    try:
        yield sse_frame("connected", {})
        while not await request.is_disconnected():
            try:
                payload = await asyncio.wait_for(sub.queue.get(), timeout=_KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield sse_frame(payload["type"], payload["data"])
    finally:
        feed.unsubscribe(sub)
        _logger.debug("refresh stream closed, %d open", len(feed))


@router.get("", summary="Refresh signal stream", description=(
    "Server-Sent Events. Sends `connected` once, then one `data_changed` "
    "(`entity`, `action`, `id`, and `cascaded` on deletes) per successful write."
))
async def change_stream(request: Request):
    sub = feed.subscribe(asyncio.get_running_loop())
    _logger.debug("refresh stream opened, %d open", len(feed))
    return StreamingResponse(
        _stream(request, sub),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
