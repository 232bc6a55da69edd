from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from core.exceptions import AlreadyFinal, InvalidTransition, PreconditionFailed, ValidationError
from models.enums import Channel, OrderStatus, PaymentStatus
from schemas.order_schemas import OrderItemDraft
from services.order_state_machine import (ORDER_TRANSITIONS, Operation, build_lines, operation_for_payment,
                                          operation_for_status, order_total, plan)

NOW = datetime(2026, 3, 14, 12, 30)


def make_order(channel=Channel.ONLINE, order_status=OrderStatus.PENDING,
               payment_status=PaymentStatus.PENDING, deliveryman_id=None, completion_time=None):
    return SimpleNamespace(
        order_id="order_abc123def456",
        channel=channel.value,
        order_status=order_status.value,
        payment_status=payment_status.value,
        deliveryman_id=deliveryman_id,
        completion_time=completion_time,
    )


def item(qty=2, price=50.0, item_id="biryani"):
    return OrderItemDraft(item_id=item_id, item_name=item_id.title(), qty=qty, item_price=price)


def test_build_lines_recomputes_totals():
    lines = build_lines([item(qty=2, price=50), item(qty=3, price=19.99, item_id="naan")])

    assert [line["total_price"] for line in lines] == [Decimal("100.00"), Decimal("59.97")]
    assert [line["position"] for line in lines] == [0, 1]
    assert order_total(lines) == Decimal("159.97")


def test_line_totals_are_exact_products():
    lines = build_lines([item(qty=3, price=0.1), item(qty=7, price=19.99, item_id="naan")])

    for line in lines:
        assert line["total_price"] == line["qty"] * line["item_price"]
    assert order_total(lines) == sum(line["qty"] * line["item_price"] for line in lines)
    assert order_total(lines) == Decimal("140.23")


@pytest.mark.parametrize("price", [0.333, 19.999, 0.001])
def test_build_lines_rejects_sub_cent_prices(price):
    with pytest.raises(ValidationError, match="two decimal places"):
        build_lines([item(qty=3, price=price)])


def test_build_lines_ignores_client_line_total():
    draft = OrderItemDraft(item_id="tea", item_name="Tea", qty=2, item_price=10, total_price=1)
    assert build_lines([draft])[0]["total_price"] == 20.0


@pytest.mark.parametrize("items", [
    [],
    None,
    [item(qty=0)],
    [item(qty=-1)],
    [item(price=0)],
    [item(price=-5)],
])
def test_build_lines_rejects_bad_items(items):
    with pytest.raises(ValidationError):
        build_lines(items)


def test_approve_pending_order():
    result = plan(make_order(), Operation.APPROVE, now=NOW)

    assert result.expected == {"order_status": "pending"}
    assert result.changes == {"order_status": "approved"}
    assert result.requires_courier is False


def test_complete_pending_order_is_invalid():
    with pytest.raises(InvalidTransition):
        plan(make_order(channel=Channel.DINE), Operation.COMPLETE, now=NOW)


def test_approve_never_regresses():
    with pytest.raises(InvalidTransition):
        plan(make_order(order_status=OrderStatus.APPROVED), Operation.APPROVE, now=NOW)
    with pytest.raises(InvalidTransition):
        plan(make_order(order_status=OrderStatus.COMPLETED), Operation.APPROVE, now=NOW)


def test_complete_online_without_courier():
    order = make_order(order_status=OrderStatus.APPROVED)

    with pytest.raises(PreconditionFailed) as exc_info:
        plan(order, Operation.COMPLETE, now=NOW)

    assert "courier must be assigned" in exc_info.value.message
    assert exc_info.value.status_code == 412


def test_complete_online_with_courier_stamps_completion():
    order = make_order(order_status=OrderStatus.APPROVED, deliveryman_id=7)
    result = plan(order, Operation.COMPLETE, now=NOW)

    assert result.changes == {"order_status": "completed", "completion_time": NOW}
    assert result.requires_courier is True


def test_complete_dine_needs_no_courier():
    order = make_order(channel=Channel.DINE, order_status=OrderStatus.APPROVED)
    result = plan(order, Operation.COMPLETE, now=NOW)

    assert result.changes["order_status"] == "completed"
    assert result.requires_courier is False


def test_complete_twice_is_already_final():
    order = make_order(order_status=OrderStatus.COMPLETED, deliveryman_id=7, completion_time=NOW)
    with pytest.raises(AlreadyFinal):
        plan(order, Operation.COMPLETE, now=datetime(2026, 3, 15))


def test_assign_courier_keeps_status():
    result = plan(make_order(order_status=OrderStatus.APPROVED), Operation.ASSIGN_COURIER,
                  now=NOW, courier_id=3)

    assert result.changes == {"deliveryman_id": 3}
    assert result.expected == {"order_status": "approved"}


def test_assign_courier_is_online_only():
    with pytest.raises(InvalidTransition):
        plan(make_order(channel=Channel.DINE), Operation.ASSIGN_COURIER, now=NOW, courier_id=3)


def test_assign_courier_after_completion_is_invalid():
    order = make_order(order_status=OrderStatus.COMPLETED, deliveryman_id=1, completion_time=NOW)
    with pytest.raises(InvalidTransition):
        plan(order, Operation.ASSIGN_COURIER, now=NOW, courier_id=3)


def test_edit_items_replaces_lines_and_total():
    order = make_order(channel=Channel.DINE, order_status=OrderStatus.APPROVED)
    result = plan(order, Operation.EDIT_ITEMS, now=NOW, items=[item(qty=4, price=25)])

    assert result.changes == {"total_amt": 100.0}
    assert len(result.items) == 1
    assert result.items[0]["total_price"] == 100.0


def test_edit_items_is_dine_only():
    with pytest.raises(InvalidTransition):
        plan(make_order(), Operation.EDIT_ITEMS, now=NOW, items=[item()])


def test_mark_paid_then_already_final():
    result = plan(make_order(), Operation.MARK_PAID, now=NOW)
    assert result.expected == {"payment_status": "pending"}
    assert result.changes == {"payment_status": "paid"}

    with pytest.raises(AlreadyFinal):
        plan(make_order(payment_status=PaymentStatus.PAID), Operation.MARK_PAID, now=NOW)


def test_failed_payment_is_terminal():
    with pytest.raises(AlreadyFinal):
        plan(make_order(payment_status=PaymentStatus.FAILED), Operation.MARK_PAID, now=NOW)
    with pytest.raises(AlreadyFinal):
        plan(make_order(payment_status=PaymentStatus.PAID), Operation.MARK_FAILED, now=NOW)


def test_payment_is_independent_of_order_status():
    order = make_order(channel=Channel.DINE, order_status=OrderStatus.COMPLETED, completion_time=NOW)
    assert plan(order, Operation.MARK_PAID, now=NOW).changes == {"payment_status": "paid"}


def test_requested_status_maps_onto_operations():
    assert operation_for_status(OrderStatus.APPROVED) == Operation.APPROVE
    assert operation_for_status(OrderStatus.COMPLETED) == Operation.COMPLETE
    assert operation_for_payment(PaymentStatus.PAID) == Operation.MARK_PAID
    assert operation_for_payment(PaymentStatus.FAILED) == Operation.MARK_FAILED

    with pytest.raises(InvalidTransition):
        operation_for_status(OrderStatus.PENDING)
    with pytest.raises(InvalidTransition):
        operation_for_payment(PaymentStatus.PENDING)


def test_transition_table_only_moves_forward():
    order = [OrderStatus.PENDING, OrderStatus.APPROVED, OrderStatus.COMPLETED]
    for (current, _), transition in ORDER_TRANSITIONS.items():
        assert order.index(transition.next_status) - order.index(current) in (0, 1)
