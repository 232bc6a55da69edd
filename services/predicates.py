"""
Subscription predicates, one factory per consumer role.

Predicates only look at the snapshot carried by the event. They must never
query the database: with M open streams and N events that would be M*N
queries.
"""

from typing import Callable

from models.enums import Channel, OrderStatus, PaymentStatus
from schemas.order_schemas import OrderResponse

OrderPredicate = Callable[[OrderResponse], bool]


def customer_orders(username: str) -> OrderPredicate:
    """Customer order tracker: the customer's own orders."""
    def predicate(order: OrderResponse) -> bool:
        return order.username == username
    return predicate


def channel_orders(channel: Channel) -> OrderPredicate:
    """Kitchen board and admin "today" board: everything on the channel."""
    channel = Channel(channel)

    def predicate(order: OrderResponse) -> bool:
        return order.channel == channel
    return predicate


def kitchen_approved() -> OrderPredicate:
    """
    Approved, unpaid dine orders, plus any completed order so the board can
    drop it.
    """
    def predicate(order: OrderResponse) -> bool:
        if order.order_status == OrderStatus.COMPLETED:
            return True
        return (
            order.channel == Channel.DINE
            and order.order_status == OrderStatus.APPROVED
            and order.payment_status == PaymentStatus.PENDING
        )
    return predicate


def courier_dashboard(courier_id: int) -> OrderPredicate:
    """Online orders assigned to one courier that still need delivering or collecting."""
    def predicate(order: OrderResponse) -> bool:
        return (
            order.channel == Channel.ONLINE
            and order.order_status in (OrderStatus.APPROVED, OrderStatus.COMPLETED)
            and order.payment_status != PaymentStatus.PAID
            and order.deliveryman is not None
            and order.deliveryman.id == courier_id
        )
    return predicate


def unassigned_pool() -> OrderPredicate:
    """Approved online orders nobody is delivering yet."""
    def predicate(order: OrderResponse) -> bool:
        return (
            order.channel == Channel.ONLINE
            and order.order_status == OrderStatus.APPROVED
            and order.deliveryman is None
        )
    return predicate
