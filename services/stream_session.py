"""
Server-sent event sessions.

A StreamSession is one open text/event-stream response. It owns exactly one
broker subscription and one heartbeat task, and gives both back when the
client goes away, when the session overflows, or when it is closed
explicitly.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from fastapi import Request
from fastapi.responses import StreamingResponse

from core.config import settings
from services.event_broker import EventBroker, OrderEvent
from services.predicates import OrderPredicate
from utils.logger import get_logger

logger = get_logger(__name__)

HEARTBEAT_FRAME = ": keep-alive\n\n"


def format_event(data: str) -> str:
    """One SSE message carrying a JSON order snapshot."""
    return f"data: {data}\n\n"


def format_retry(seconds: float) -> str:
    """Tell EventSource clients how long to wait before reconnecting."""
    return f"retry: {int(seconds * 1000)}\n\n"


class StreamSession:

    def __init__(self, broker: EventBroker, predicate: OrderPredicate, *, label: str = "",
                 heartbeat_interval: Optional[float] = None, max_queue: Optional[int] = None):
        self.broker = broker
        self.predicate = predicate
        self.label = label
        self.heartbeat_interval = (
            settings.STREAM_HEARTBEAT_SECONDS if heartbeat_interval is None else heartbeat_interval
        )
        self.max_queue = settings.STREAM_QUEUE_SIZE if max_queue is None else max_queue

        self.subscription = None
        self.heartbeat_task: Optional[asyncio.Task] = None
        self.closed = False
        self.dropped = False
        self.sent = 0
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def opened(self) -> bool:
        return self.subscription is not None

    async def open(self) -> "StreamSession":
        if self.opened or self.closed:
            return self
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.max_queue)
        self.subscription = self.broker.subscribe(self._on_event, label=self.label)
        self.heartbeat_task = asyncio.create_task(self._heartbeat())

        logger.info(
            "Stream session opened",
            extra={"channel": self.broker.channel.value, "label": self.label,
                   "subscription_id": self.subscription.id}
        )
        return self

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def _on_event(self, event: OrderEvent) -> None:
        # Broker callback: filter and hand off, never block
        if self.closed or not self.predicate(event.order):
            return

        frame = format_event(event.data)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._enqueue(frame)
        else:
            self._loop.call_soon_threadsafe(self._enqueue, frame)

    def _enqueue(self, frame: str) -> None:
        if self.closed:
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                "Stream session fell behind, disconnecting",
                extra={"channel": self.broker.channel.value, "label": self.label,
                       "queue_size": self.max_queue}
            )
            self.dropped = True
            self.close()

    async def _heartbeat(self) -> None:
        while not self.closed:
            await asyncio.sleep(self.heartbeat_interval)
            if self._queue.full():
                continue
            self._queue.put_nowait(HEARTBEAT_FRAME)

    def close(self) -> None:
        """Unregister from the broker and stop the heartbeat. Safe to call twice."""
        if self.closed:
            return
        self.closed = True

        if self.subscription is not None:
            self.broker.unsubscribe(self.subscription)
        if self.heartbeat_task is not None and not self.heartbeat_task.done():
            self.heartbeat_task.cancel()

        # Wake a consumer blocked on get(); a full queue has no blocked consumer
        if self._queue is not None and not self._queue.full():
            self._queue.put_nowait(None)

        logger.info(
            "Stream session closed",
            extra={"channel": self.broker.channel.value, "label": self.label,
                   "messages_sent": self.sent, "dropped": self.dropped}
        )

    async def stream(self, is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None):
        """
        Async iterator of SSE frames, suitable for StreamingResponse.

        Ends when the session is closed or `is_disconnected` reports the
        client gone; cancellation by the server has the same effect.
        """
        await self.open()
        try:
            yield format_retry(settings.CLIENT_RECONNECT_DELAY_SECONDS)
            while not self.closed:
                frame = await self._queue.get()
                if frame is None or self.closed:
                    break
                if is_disconnected is not None and await is_disconnected():
                    break
                yield frame
                if frame != HEARTBEAT_FRAME:
                    self.sent += 1
        finally:
            self.close()


def event_stream_response(request: Request, broker: EventBroker,
                          predicate: OrderPredicate, label: str) -> StreamingResponse:
    """Wrap a new StreamSession in a text/event-stream response."""
    session = StreamSession(broker, predicate, label=label)
    return StreamingResponse(
        session.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
