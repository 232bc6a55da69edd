"""
Order Service - order lifecycle operations.

Each operation reads the order, asks the state machine for a plan, applies
it with a guarded update, reloads the full snapshot and publishes it on the
channel's broker. Publication happens after commit and before the method
returns.
"""
import uuid
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from core.exceptions import InvalidTransition, NotFound
from models.enums import Channel, EventKind, OrderStatus, PaymentStatus
from repositories.order_repository import OrderRepository
from schemas.order_schemas import DineOrderDraft, OnlineOrderDraft, OrderResponse
from services import order_state_machine as machine
from services.courier_service import CourierService
from services.event_broker import OrderBrokers
from services.order_state_machine import Operation
from utils.logger import get_logger, order_log_context
from utils.time_windows import utcnow

logger = get_logger(__name__)


def new_order_id() -> str:
    return f"order_{uuid.uuid4().hex[:12]}"


class OrderService:

    def __init__(self, db: Session, brokers: OrderBrokers):
        self.db = db
        self.repository = OrderRepository(db)
        self.brokers = brokers

    def _publish(self, kind: EventKind, order: OrderResponse) -> None:
        self.brokers.for_channel(order.channel).publish(kind, order)

    def _load(self, order_id: str, channel: Optional[Channel] = None):
        order = self.repository.get_by_order_id(order_id, Channel(channel).value if channel else None)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    def get_order(self, order_id: str, channel: Optional[Channel] = None) -> OrderResponse:
        return OrderResponse.model_validate(self._load(order_id, channel))

    def create_order(self, draft: Union[DineOrderDraft, OnlineOrderDraft]) -> OrderResponse:
        """
        Place a new order.

        Item lines and total_amt are recomputed here; any client-supplied
        totals are ignored. The order starts pending/pending and a newOrder
        event is published.

        Raises:
            ValidationError: empty items, non-positive qty or price, sub-cent price
        """
        channel = Channel.DINE if isinstance(draft, DineOrderDraft) else Channel.ONLINE
        lines = machine.build_lines(draft.items)
        total = machine.order_total(lines)

        if draft.total_amt is not None and round(draft.total_amt, 2) != float(total):
            logger.info(
                "Client total ignored",
                extra={"client_total": draft.total_amt, "total_amt": float(total), "username": draft.username}
            )

        order_data = {
            "order_id": new_order_id(),
            "channel": channel.value,
            "username": draft.username,
            "order_time": utcnow(),
            "total_amt": total,
            "order_status": OrderStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
        }
        if channel == Channel.DINE:
            order_data["table_number"] = draft.table_number
        else:
            order_data["address"] = draft.address
            order_data["mobile_no"] = draft.mobile_no

        order = OrderResponse.model_validate(self.repository.create(order_data, lines))

        logger.info("Order placed", extra={**order_log_context(order), "total_amt": order.total_amt})
        self._publish(EventKind.NEW_ORDER, order)
        return order

    def _transition(self, order_id: str, operation: Operation, channel: Optional[Channel] = None,
                    courier_id: Optional[int] = None, items: Optional[Iterable] = None) -> OrderResponse:
        current = self._load(order_id, channel)
        plan = machine.plan(current, operation, now=utcnow(), courier_id=courier_id, items=items)

        applied = self.repository.conditional_update(
            order_id, plan.expected, plan.changes,
            requires_courier=plan.requires_courier, lines=plan.items,
        )
        if not applied:
            logger.warning(
                "Order changed concurrently",
                extra={"order_id": order_id, "operation": operation.value}
            )
            raise InvalidTransition(
                f"Order {order_id} was modified concurrently, refetch it and try again"
            )

        order = OrderResponse.model_validate(self._load(order_id))
        logger.info(f"Order {operation.value}", extra={**order_log_context(order), "operation": operation.value})
        self._publish(EventKind.ORDER_UPDATE, order)
        return order

    def approve(self, order_id: str, channel: Optional[Channel] = None) -> OrderResponse:
        return self._transition(order_id, Operation.APPROVE, channel)

    def complete(self, order_id: str, channel: Optional[Channel] = None) -> OrderResponse:
        return self._transition(order_id, Operation.COMPLETE, channel)

    def mark_paid(self, order_id: str, channel: Optional[Channel] = None) -> OrderResponse:
        return self._transition(order_id, Operation.MARK_PAID, channel)

    def mark_failed(self, order_id: str, channel: Optional[Channel] = None) -> OrderResponse:
        return self._transition(order_id, Operation.MARK_FAILED, channel)

    def assign_courier(self, order_id: str, courier_id: int,
                       channel: Optional[Channel] = Channel.ONLINE) -> OrderResponse:
        """
        Point an online order at a courier. Does not change order_status.

        Raises:
            NotFound: unknown order or courier
        """
        CourierService.resolve(self.db, courier_id)
        return self._transition(order_id, Operation.ASSIGN_COURIER, channel, courier_id=courier_id)

    def edit_items(self, order_id: str, items: Iterable,
                   channel: Optional[Channel] = Channel.DINE) -> OrderResponse:
        """Replace the items of a dine order that is not completed yet."""
        return self._transition(order_id, Operation.EDIT_ITEMS, channel, items=items)

    def set_order_status(self, order_id: str, target: OrderStatus,
                         channel: Optional[Channel] = None) -> OrderResponse:
        """Move to a requested status; only the next status in the lifecycle is accepted."""
        return self._transition(order_id, machine.operation_for_status(OrderStatus(target)), channel)

    def set_payment_status(self, order_id: str, target: PaymentStatus,
                           channel: Optional[Channel] = None) -> OrderResponse:
        return self._transition(order_id, machine.operation_for_payment(PaymentStatus(target)), channel)

    def republish(self, order_ids: List[str]) -> None:
        """Publish current snapshots of orders changed outside the state machine."""
        for order_id in order_ids:
            order = self.repository.get_by_order_id(order_id)
            if order is None:
                continue
            self._publish(EventKind.ORDER_UPDATE, OrderResponse.model_validate(order))
