from datetime import datetime

from clients.reconciliation import OrderBoard, hide_paid
from models.enums import OrderStatus, PaymentStatus
from tests.helpers import make_snapshot


def snapshot_at(order_id, hour, **kwargs):
    return make_snapshot(order_id, order_time=datetime(2026, 3, 14, hour, 0), **kwargs)


def ids(orders):
    return [order.order_id for order in orders]


def test_snapshot_is_sorted_newest_first():
    board = OrderBoard()
    board.load_snapshot([snapshot_at("a", 9), snapshot_at("c", 11), snapshot_at("b", 10)])

    assert ids(board.orders) == ["c", "b", "a"]


def test_load_snapshot_replaces_board():
    board = OrderBoard()
    board.load_snapshot([snapshot_at("a", 9)])
    board.load_snapshot([snapshot_at("b", 10)])

    assert ids(board.orders) == ["b"]


def test_new_order_is_prepended():
    board = OrderBoard()
    board.load_snapshot([snapshot_at("a", 9)])

    board.apply(snapshot_at("b", 10))

    assert ids(board.orders) == ["b", "a"]


def test_update_replaces_in_place():
    board = OrderBoard()
    board.load_snapshot([snapshot_at("a", 9), snapshot_at("b", 10)])

    board.apply(snapshot_at("a", 9, order_status=OrderStatus.APPROVED))

    assert ids(board.orders) == ["b", "a"]
    assert board.get("a").order_status == OrderStatus.APPROVED


def test_late_event_for_older_order_is_sorted():
    board = OrderBoard()
    board.load_snapshot([snapshot_at("b", 10)])

    board.apply(snapshot_at("a", 8))

    assert ids(board.orders) == ["b", "a"]


def test_apply_is_idempotent():
    board = OrderBoard(hide_paid)
    board.load_snapshot([snapshot_at("a", 9), snapshot_at("b", 10)])
    event = snapshot_at("c", 11, order_status=OrderStatus.APPROVED, deliveryman_id=2)

    once = board.apply(event)
    twice = board.apply(event)

    assert once == twice
    assert len(board.all_orders) == 3


def test_paid_orders_leave_active_board():
    board = OrderBoard(hide_paid)
    board.load_snapshot([snapshot_at("a", 9), snapshot_at("b", 10)])

    board.apply(snapshot_at("a", 9, payment_status=PaymentStatus.PAID))

    assert ids(board.orders) == ["b"]
    assert "a" not in board
    # Still tracked, so later updates keep merging
    assert board.get("a").payment_status == PaymentStatus.PAID
