"""
Order Repository - Data Access Layer
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from models.order_items import OrderItem
from models.orders import Order
from utils.time_windows import utcnow


class OrderRepository:
    """
    Narrow store interface used by the order core.

    Reads always load items and the courier in the same round trip so the
    returned rows can be turned into full snapshots without further queries.
    """

    def __init__(self, db: Session):
        self.db = db

    def _select(self):
        return select(Order).options(
            selectinload(Order.items),
            joinedload(Order.deliveryman),
        )

    def get_by_order_id(self, order_id: str, channel: Optional[str] = None) -> Optional[Order]:
        """Get order by its public id, optionally restricted to one channel"""
        stmt = self._select().where(Order.order_id == order_id)
        if channel is not None:
            stmt = stmt.where(Order.channel == channel)
        stmt = stmt.execution_options(populate_existing=True)
        return self.db.execute(stmt).unique().scalar_one_or_none()

    def create(self, order_data: dict, lines: List[dict]) -> Order:
        """
        Create new order with its item lines

        Args:
            order_data: Dictionary with order columns
            lines: Item lines, already validated and priced

        Returns:
            Created order
        """
        order = Order(**order_data)
        order.items = [OrderItem(**line) for line in lines]
        self.db.add(order)
        self.db.commit()
        return self.get_by_order_id(order.order_id)

    def conditional_update(self, order_id: str, expected: dict, changes: dict,
                           requires_courier: bool = False,
                           lines: Optional[List[dict]] = None) -> bool:
        """
        Apply `changes` only if the row still matches `expected`.

        The status guard travels inside the UPDATE itself, so two racing
        requests cannot both succeed. When `lines` is given the item list is
        replaced in the same transaction.

        Returns:
            True if the row was updated, False if the guard did not match
        """
        stmt = update(Order).where(Order.order_id == order_id)
        for column, value in expected.items():
            stmt = stmt.where(getattr(Order, column) == value)
        if requires_courier:
            stmt = stmt.where(Order.deliveryman_id.is_not(None))

        # Always touch updated_at so item-only edits still count as a write
        stmt = stmt.values(**changes, updated_at=utcnow()).execution_options(synchronize_session=False)

        try:
            result = self.db.execute(stmt)
            if result.rowcount != 1:
                self.db.rollback()
                return False

            if lines is not None:
                order_pk = self.db.execute(
                    select(Order.id).where(Order.order_id == order_id)
                ).scalar_one()
                self.db.query(OrderItem).filter(OrderItem.order_pk == order_pk).delete(
                    synchronize_session=False
                )
                self.db.add_all(OrderItem(order_pk=order_pk, **line) for line in lines)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def _filtered(self, stmt, *, channel: Optional[str] = None,
                  since: Optional[datetime] = None, until: Optional[datetime] = None,
                  username: Optional[str] = None,
                  order_statuses: Optional[Iterable[str]] = None,
                  payment_status: Optional[str] = None,
                  payment_status_not: Optional[str] = None,
                  deliveryman_id: Optional[int] = None,
                  unassigned: bool = False):
        if channel is not None:
            stmt = stmt.where(Order.channel == channel)
        if since is not None:
            stmt = stmt.where(Order.order_time >= since)
        if until is not None:
            stmt = stmt.where(Order.order_time < until)
        if username is not None:
            stmt = stmt.where(Order.username == username)
        if order_statuses is not None:
            stmt = stmt.where(Order.order_status.in_(list(order_statuses)))
        if payment_status is not None:
            stmt = stmt.where(Order.payment_status == payment_status)
        if payment_status_not is not None:
            stmt = stmt.where(Order.payment_status != payment_status_not)
        if deliveryman_id is not None:
            stmt = stmt.where(Order.deliveryman_id == deliveryman_id)
        if unassigned:
            stmt = stmt.where(Order.deliveryman_id.is_(None))
        return stmt

    def find(self, skip: int = 0, limit: Optional[int] = None, **filters) -> List[Order]:
        """Range query, newest first"""
        stmt = self._filtered(self._select(), **filters).order_by(desc(Order.order_time), desc(Order.id))
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).unique().scalars().all())

    def count(self, **filters) -> int:
        """Count orders matching the same filters as find()"""
        stmt = self._filtered(select(func.count(Order.id)), **filters)
        return self.db.execute(stmt).scalar_one()
