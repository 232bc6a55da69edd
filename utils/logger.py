"""
Logging helpers shared by routers and services.
"""

import logging
from typing import Any, Dict

SENSITIVE_FIELDS = ('password', 'token', 'secret', 'authorization')
REDACTED = "***REDACTED***"


def get_logger(name: str) -> logging.Logger:
    """
    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Copy of `data` that is safe to pass as `extra=`.

    Courier payloads carry passwords and staff requests carry bearer tokens.
    Passwords, secrets and authorization headers are replaced outright;
    tokens keep their first 8 characters so two log lines can still be
    matched up. Nested dicts are sanitized too.
    """
    sanitized = {}

    for key, value in data.items():
        lowered = key.lower()
        if isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)
        elif not any(field in lowered for field in SENSITIVE_FIELDS) or not isinstance(value, str):
            sanitized[key] = value
        elif 'token' in lowered and len(value) > 8:
            sanitized[key] = f"{value[:8]}..."
        else:
            sanitized[key] = REDACTED

    return sanitized


def order_log_context(order) -> Dict[str, Any]:
    """
    Structured `extra` fields describing an order snapshot.

    Usage:
        logger.info("Order approved", extra=order_log_context(order))
    """
    deliveryman = getattr(order, "deliveryman", None)
    return {
        "order_id": order.order_id,
        "channel": order.channel,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
        "deliveryman_id": deliveryman.id if deliveryman else None,
    }
