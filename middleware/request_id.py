"""
Request ID middleware for tracking requests across the application.

The id is kept in a context variable rather than on a global log record
factory: stream responses stay open for hours and many run concurrently, so
each request's logs must carry its own id.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="no-request-id")


class RequestIDFilter(logging.Filter):
    """Stamp every log record with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a unique request ID to each request.

    1. Use the client's X-Request-ID header, or generate a UUID
    2. Store it in request.state and in the logging context
    3. Echo it back in the X-Request-ID response header
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            response: Response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_var.reset(token)


def get_request_id(request: Request) -> str:
    """
    Request ID stored by RequestIDMiddleware, or "no-request-id".

    Usage in route handlers:
        logger.info("Fetching orders", extra={"request_id": get_request_id(request)})
    """
    return getattr(request.state, "request_id", "no-request-id")
