"""
In-process publish/subscribe hub for order events.

One EventBroker exists per channel (dine, online). Instances are created by
the application's composition root (see main.py) and handed to whoever needs
them; there is no module-level broker.
"""

import itertools
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from core.config import settings
from models.enums import Channel, EventKind
from schemas.order_schemas import OrderResponse
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderEvent:
    """
    One published change: the kind, the full resolved snapshot, and that
    snapshot serialized once for every subscriber to reuse.
    """
    kind: EventKind
    order: OrderResponse
    data: str


@dataclass(frozen=True)
class Subscription:
    id: int
    channel: Channel
    label: str = ""


SubscriberCallback = Callable[[OrderEvent], None]


class EventBroker:
    """
    Fan-out of order events to the callbacks registered at publish time.

    Callbacks run synchronously in the publisher's thread, on a copy of the
    registry, each one isolated: a failing callback is logged and skipped.
    Callbacks must not block; stream sessions only enqueue.
    """

    def __init__(self, channel: Channel, slow_callback_ms: Optional[float] = None):
        self.channel = Channel(channel)
        self.slow_callback_ms = (
            settings.BROKER_SLOW_CALLBACK_MS if slow_callback_ms is None else slow_callback_ms
        )
        self._subscribers: Dict[Subscription, SubscriberCallback] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, callback: SubscriberCallback, label: str = "") -> Subscription:
        with self._lock:
            subscription = Subscription(id=next(self._ids), channel=self.channel, label=label)
            self._subscribers[subscription] = callback
            count = len(self._subscribers)

        logger.debug(
            "Subscriber registered",
            extra={"channel": self.channel.value, "subscription_id": subscription.id,
                   "label": label, "subscribers": count}
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription. Returns False if it was already gone."""
        with self._lock:
            removed = self._subscribers.pop(subscription, None) is not None
            count = len(self._subscribers)

        if removed:
            logger.debug(
                "Subscriber removed",
                extra={"channel": self.channel.value, "subscription_id": subscription.id,
                       "subscribers": count}
            )
        return removed

    def publish(self, kind: EventKind, order: OrderResponse) -> int:
        """
        Deliver one event to every current subscriber.

        Returns:
            Number of callbacks that returned without raising
        """
        event = OrderEvent(kind=EventKind(kind), order=order, data=order.model_dump_json())

        with self._lock:
            targets = list(self._subscribers.items())

        delivered = 0
        for subscription, callback in targets:
            started = time.perf_counter()
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Subscriber callback failed",
                    extra={"channel": self.channel.value, "subscription_id": subscription.id,
                           "label": subscription.label, "order_id": order.order_id}
                )
            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > self.slow_callback_ms:
                logger.warning(
                    "Slow subscriber callback",
                    extra={"channel": self.channel.value, "subscription_id": subscription.id,
                           "label": subscription.label, "duration_ms": round(elapsed_ms, 2)}
                )

        logger.debug(
            "Order event published",
            extra={"channel": self.channel.value, "event": event.kind.value,
                   "order_id": order.order_id, "subscribers": len(targets), "delivered": delivered}
        )
        return delivered


class OrderBrokers:
    """The pair of channel brokers owned by one application instance."""

    def __init__(self, dine: Optional[EventBroker] = None, online: Optional[EventBroker] = None):
        self.dine = dine or EventBroker(Channel.DINE)
        self.online = online or EventBroker(Channel.ONLINE)

    def for_channel(self, channel) -> EventBroker:
        return self.dine if Channel(channel) == Channel.DINE else self.online
