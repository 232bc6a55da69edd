"""
HTTP middleware: request correlation ids and per-caller rate limits.
"""

from middleware.request_id import RequestIDFilter, RequestIDMiddleware, get_request_id, request_id_var
from middleware.rate_limiter import limiter, get_user_id

__all__ = [
    "RequestIDFilter",
    "RequestIDMiddleware",
    "get_request_id",
    "request_id_var",
    "limiter",
    "get_user_id",
]
