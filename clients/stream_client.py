"""
HTTP client for the order boards with retry and reconnect logic.

Fetches the board snapshot, then follows the matching text/event-stream
endpoint. After a transport error, a 5xx or a garbled frame it waits,
refreshes the snapshot and opens a new stream; streams have no resume cursor.
"""

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Dict, List, Optional

import httpx
from pydantic import ValidationError as SchemaError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from clients.reconciliation import OrderBoard
from core.config import settings
from schemas.order_schemas import OrderResponse
from utils.logger import get_logger

logger = get_logger(__name__)


class MalformedEventError(Exception):
    """A stream frame that is not a valid order snapshot."""
    pass


def is_recoverable(error: Exception) -> bool:
    """
    Whether `run()` should resync after `error` instead of giving up.

    Transport failures, 5xx answers (a restarting server behind a proxy) and
    garbled frames are recoverable; 4xx answers such as an expired token are
    not, retrying them cannot succeed.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.is_server_error
    return isinstance(error, (httpx.TransportError, MalformedEventError))


class SSEParser:
    """
    Incremental text/event-stream parser.

    Feed it one line at a time (without the newline); a complete event's
    data is returned on the blank line that ends it. Comment lines (the
    server's keep-alives) are ignored. A `retry:` field is kept in
    `retry_ms`.
    """

    def __init__(self):
        self._data: List[str] = []
        self.retry_ms: Optional[int] = None

    def feed(self, line: str) -> Optional[str]:
        if line == "":
            if not self._data:
                return None
            data = "\n".join(self._data)
            self._data = []
            return data

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "retry" and value.isdigit():
            self.retry_ms = int(value)
        return None


class OrderStreamClient:
    """
    Keeps an OrderBoard in sync with one snapshot endpoint and one stream.

    Usage:
        board = OrderBoard(hide_paid)
        client = OrderStreamClient("http://kitchen:8000", "/admin/orders/today",
                                   "/admin/orders/stream", board, headers=auth_headers)
        await client.run()
    """

    def __init__(self, base_url: str, snapshot_path: str, stream_path: str, board: OrderBoard,
                 headers: Optional[Dict[str, str]] = None, client: Optional[httpx.AsyncClient] = None,
                 reconnect_delay: Optional[float] = None):
        self.snapshot_path = snapshot_path
        self.stream_path = stream_path
        self.board = board
        self.reconnect_delay = (
            settings.CLIENT_RECONNECT_DELAY_SECONDS if reconnect_delay is None else reconnect_delay
        )
        self.client = client or httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=settings.CLIENT_TIMEOUT_SECONDS
        )
        self._owns_client = client is None
        self._stopped = False
        self.reconnects = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        self.stop()
        if self._owns_client:
            await self.client.aclose()

    def stop(self) -> None:
        """Ask `run()` to return once the current stream ends."""
        self._stopped = True

    @retry(
        stop=stop_after_attempt(settings.CLIENT_MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.CLIENT_RETRY_DELAY, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True
    )
    async def fetch_snapshot(self) -> List[OrderResponse]:
        """
        Get the board snapshot.

        Connection failures and timeouts are retried with exponential
        backoff; HTTP error statuses are raised as httpx.HTTPStatusError.
        """
        response = await self.client.get(self.snapshot_path)
        response.raise_for_status()

        payload = response.json()
        # Paginated reports wrap the list
        if isinstance(payload, dict):
            payload = payload.get("orders", [])
        return [OrderResponse.model_validate(order) for order in payload]

    async def events(self) -> AsyncIterator[OrderResponse]:
        """
        Yield every order snapshot pushed on the stream until it closes.

        Raises:
            MalformedEventError: a frame did not parse as an order
        """
        parser = SSEParser()
        timeout = httpx.Timeout(settings.CLIENT_TIMEOUT_SECONDS, read=None)

        async with self.client.stream("GET", self.stream_path, timeout=timeout) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                data = parser.feed(line.rstrip("\r"))
                if parser.retry_ms is not None:
                    self.reconnect_delay = parser.retry_ms / 1000
                if data is None:
                    continue
                try:
                    order = OrderResponse.model_validate_json(data)
                except SchemaError as e:
                    logger.warning(
                        "Malformed order event",
                        extra={"path": self.stream_path, "frame": data[:200], "errors": e.error_count()}
                    )
                    raise MalformedEventError(f"Invalid order event on {self.stream_path}") from e
                yield order

    async def run_once(self) -> int:
        """
        Refresh the snapshot, then apply stream events until the stream ends.

        Returns:
            Number of events applied
        """
        self.board.load_snapshot(await self.fetch_snapshot())
        logger.info(
            "Board snapshot loaded",
            extra={"path": self.snapshot_path, "orders": len(self.board.all_orders)}
        )

        applied = 0
        async with aclosing(self.events()) as events:
            async for order in events:
                self.board.apply(order)
                applied += 1
                if self._stopped:
                    break
        return applied

    async def run(self) -> None:
        """
        Follow the stream until `stop()`.

        After a recoverable failure (see `is_recoverable`) it waits
        `reconnect_delay` and starts over from a fresh snapshot; anything else
        is raised.
        """
        self._stopped = False
        while not self._stopped:
            try:
                await self.run_once()
            except (httpx.HTTPError, MalformedEventError) as e:
                if not is_recoverable(e):
                    raise
                logger.warning(
                    f"Order stream interrupted: {e}",
                    extra={"path": self.stream_path, "retry_in_seconds": self.reconnect_delay}
                )
            else:
                logger.info("Order stream closed by server", extra={"path": self.stream_path})

            if self._stopped:
                break
            self.reconnects += 1
            await asyncio.sleep(self.reconnect_delay)
