"""
Order lifecycle rules.

Every status-changing endpoint goes through the two tables below; nothing
else in the code base decides whether a transition is legal. The functions
here are pure: they read an order snapshot and return a Plan describing the
guarded write, they never touch the database or the brokers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Optional, Union

from core.exceptions import AlreadyFinal, InvalidTransition, PreconditionFailed, ValidationError
from models.enums import Channel, OrderStatus, PaymentStatus


class Operation(str, Enum):
    APPROVE = "approve"
    COMPLETE = "complete"
    ASSIGN_COURIER = "assign_courier"
    EDIT_ITEMS = "edit_items"
    MARK_PAID = "mark_paid"
    MARK_FAILED = "mark_failed"


class Effect(str, Enum):
    STAMP_COMPLETION = "stamp_completion_time"
    SET_COURIER = "set_courier"
    REPLACE_ITEMS = "replace_items"


BOTH_CHANNELS = frozenset({Channel.DINE, Channel.ONLINE})


@dataclass(frozen=True)
class Transition:
    next_status: Union[OrderStatus, PaymentStatus]
    effects: tuple = ()
    channels: frozenset = BOTH_CHANNELS
    courier_required_for: frozenset = frozenset()


ORDER_TRANSITIONS: dict[tuple[OrderStatus, Operation], Transition] = {
    (OrderStatus.PENDING, Operation.APPROVE): Transition(OrderStatus.APPROVED),
    (OrderStatus.APPROVED, Operation.COMPLETE): Transition(
        OrderStatus.COMPLETED,
        effects=(Effect.STAMP_COMPLETION,),
        courier_required_for=frozenset({Channel.ONLINE}),
    ),
    (OrderStatus.PENDING, Operation.ASSIGN_COURIER): Transition(
        OrderStatus.PENDING, effects=(Effect.SET_COURIER,), channels=frozenset({Channel.ONLINE})
    ),
    (OrderStatus.APPROVED, Operation.ASSIGN_COURIER): Transition(
        OrderStatus.APPROVED, effects=(Effect.SET_COURIER,), channels=frozenset({Channel.ONLINE})
    ),
    (OrderStatus.PENDING, Operation.EDIT_ITEMS): Transition(
        OrderStatus.PENDING, effects=(Effect.REPLACE_ITEMS,), channels=frozenset({Channel.DINE})
    ),
    (OrderStatus.APPROVED, Operation.EDIT_ITEMS): Transition(
        OrderStatus.APPROVED, effects=(Effect.REPLACE_ITEMS,), channels=frozenset({Channel.DINE})
    ),
}

PAYMENT_TRANSITIONS: dict[tuple[PaymentStatus, Operation], Transition] = {
    (PaymentStatus.PENDING, Operation.MARK_PAID): Transition(PaymentStatus.PAID),
    (PaymentStatus.PENDING, Operation.MARK_FAILED): Transition(PaymentStatus.FAILED),
}

PAYMENT_OPERATIONS = frozenset({Operation.MARK_PAID, Operation.MARK_FAILED})
FINAL_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.FAILED})


@dataclass
class Plan:
    """
    A guarded write: apply `changes` only if the stored row still matches
    `expected` (and still has a courier when `requires_courier`).
    """
    operation: Operation
    expected: dict[str, Any]
    changes: dict[str, Any]
    requires_courier: bool = False
    items: Optional[list[dict]] = None
    effects: tuple = field(default_factory=tuple)


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Exact Decimal for a client amount; floats go through their shortest repr."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount


def build_lines(items: Iterable) -> list[dict]:
    """
    Validate draft items and recompute each line total.

    Money is Decimal throughout, so every line total is exactly qty * price.

    Raises:
        ValidationError: empty list, non-positive qty or price, or a price
            with more than two decimal places
    """
    lines = []
    for position, item in enumerate(items or []):
        qty = item.qty
        price = to_money(item.item_price) if item.item_price is not None else None
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError(f"Item '{item.item_id}' must have a positive integer quantity")
        if price is None or price <= 0:
            raise ValidationError(f"Item '{item.item_id}' must have a positive price")
        if price != price.quantize(CENT):
            raise ValidationError(f"Item '{item.item_id}' price has more than two decimal places")
        lines.append({
            "position": position,
            "item_id": item.item_id,
            "item_name": item.item_name,
            "qty": qty,
            "item_price": price.quantize(CENT),
            "total_price": (qty * price).quantize(CENT),
        })

    if not lines:
        raise ValidationError("An order must contain at least one item")
    return lines


def order_total(lines: Iterable[dict]) -> Decimal:
    return sum((line["total_price"] for line in lines), Decimal("0")).quantize(CENT)


def plan(order, operation: Operation, *, now: datetime,
         courier_id: Optional[int] = None, items: Optional[Iterable] = None) -> Plan:
    """
    Decide whether `operation` may run on `order` and describe the write.

    Args:
        order: anything exposing channel, order_status, payment_status,
            deliveryman_id and completion_time (ORM row or test double)
        operation: what the caller wants to do
        now: timestamp used for completion stamping
        courier_id: required for ASSIGN_COURIER
        items: required for EDIT_ITEMS

    Raises:
        InvalidTransition, AlreadyFinal, PreconditionFailed, ValidationError
    """
    channel = Channel(order.channel)

    if operation in PAYMENT_OPERATIONS:
        current = PaymentStatus(order.payment_status)
        transition = PAYMENT_TRANSITIONS.get((current, operation))
        if transition is None:
            if current in FINAL_PAYMENT_STATUSES:
                raise AlreadyFinal(f"Payment for order {order.order_id} is already {current.value}")
            raise InvalidTransition(f"Cannot {operation.value} when payment is {current.value}")
        status_field = "payment_status"
    else:
        current = OrderStatus(order.order_status)
        transition = ORDER_TRANSITIONS.get((current, operation))
        if transition is None:
            if operation == Operation.COMPLETE and current == OrderStatus.COMPLETED:
                raise AlreadyFinal(f"Order {order.order_id} is already completed")
            raise InvalidTransition(f"Cannot {operation.value} an order that is {current.value}")
        status_field = "order_status"

    if channel not in transition.channels:
        raise InvalidTransition(f"{operation.value} does not apply to {channel.value} orders")

    requires_courier = channel in transition.courier_required_for
    if requires_courier and order.deliveryman_id is None:
        raise PreconditionFailed("A courier must be assigned before completion")

    changes: dict[str, Any] = {}
    if transition.next_status != current:
        changes[status_field] = transition.next_status.value

    lines = None
    for effect in transition.effects:
        if effect == Effect.STAMP_COMPLETION and order.completion_time is None:
            changes["completion_time"] = now
        elif effect == Effect.SET_COURIER:
            if courier_id is None:
                raise ValidationError("A courier id is required")
            changes["deliveryman_id"] = courier_id
        elif effect == Effect.REPLACE_ITEMS:
            lines = build_lines(items)
            changes["total_amt"] = order_total(lines)

    return Plan(
        operation=operation,
        expected={status_field: current.value},
        changes=changes,
        requires_courier=requires_courier,
        items=lines,
        effects=transition.effects,
    )


def operation_for_status(target: OrderStatus) -> Operation:
    """Map a requested order status onto the operation that reaches it."""
    if target == OrderStatus.APPROVED:
        return Operation.APPROVE
    if target == OrderStatus.COMPLETED:
        return Operation.COMPLETE
    raise InvalidTransition("Order status cannot be set back to pending")


def operation_for_payment(target: PaymentStatus) -> Operation:
    """Map a requested payment status onto the operation that reaches it."""
    if target == PaymentStatus.PAID:
        return Operation.MARK_PAID
    if target == PaymentStatus.FAILED:
        return Operation.MARK_FAILED
    raise InvalidTransition("Payment status cannot be set back to pending")
