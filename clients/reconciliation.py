"""
Consumer-side view of an order board.

A board is seeded from a snapshot endpoint and kept current by the matching
event stream. Snapshots and events carry the same OrderResponse shape, so
both go through the same merge.
"""

from typing import Callable, Iterable, List, Optional

from models.enums import PaymentStatus
from schemas.order_schemas import OrderResponse

DisplayFilter = Callable[[OrderResponse], bool]


def hide_paid(order: OrderResponse) -> bool:
    """Active-orders boards drop an order once it is paid."""
    return order.payment_status != PaymentStatus.PAID


def show_all(order: OrderResponse) -> bool:
    return True


class OrderBoard:
    """
    In-memory list of orders, newest first.

    `apply` replaces an order with the same order_id in place or prepends a
    new one, then re-sorts. Applying the same event twice leaves the board
    unchanged. The display filter only affects `orders`; the full list is
    kept so a later update of a hidden order still merges correctly.
    """

    def __init__(self, display_filter: Optional[DisplayFilter] = None):
        self.display_filter = display_filter or show_all
        self._orders: List[OrderResponse] = []

    def __len__(self):
        return len(self.orders)

    def __contains__(self, order_id: str) -> bool:
        return any(order.order_id == order_id for order in self.orders)

    @property
    def orders(self) -> List[OrderResponse]:
        """Orders that pass the display filter, newest first."""
        return [order for order in self._orders if self.display_filter(order)]

    @property
    def all_orders(self) -> List[OrderResponse]:
        return list(self._orders)

    def get(self, order_id: str) -> Optional[OrderResponse]:
        for order in self._orders:
            if order.order_id == order_id:
                return order
        return None

    def load_snapshot(self, orders: Iterable[OrderResponse]) -> List[OrderResponse]:
        """Replace the board with a fresh snapshot."""
        self._orders = []
        for order in orders:
            self._merge(order)
        self._sort()
        return self.orders

    def apply(self, order: OrderResponse) -> List[OrderResponse]:
        """Merge one streamed order snapshot and return the visible board."""
        self._merge(order)
        self._sort()
        return self.orders

    def _merge(self, order: OrderResponse) -> None:
        for index, existing in enumerate(self._orders):
            if existing.order_id == order.order_id:
                self._orders[index] = order
                return
        self._orders.insert(0, order)

    def _sort(self) -> None:
        # sort() is stable, so orders placed at the same instant keep their positions
        self._orders.sort(key=lambda order: order.order_time, reverse=True)
