"""
Point-in-time order queries used to seed a consumer before it streams, and
the paid/completed reporting queries.

Every method returns OrderResponse snapshots built exactly like the ones the
brokers publish (items and resolved courier included), newest first.
"""
import math
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import ValidationError
from models.enums import Channel, OrderStatus, PaymentStatus
from repositories.order_repository import OrderRepository
from schemas.order_schemas import OrderPage, OrderResponse
from utils import time_windows
from utils.logger import get_logger

logger = get_logger(__name__)

ACTIVE_DELIVERY_STATUSES = (OrderStatus.APPROVED.value, OrderStatus.COMPLETED.value)


class SnapshotQueryService:

    def __init__(self, db: Session):
        self.repository = OrderRepository(db)

    def _snapshots(self, **filters) -> List[OrderResponse]:
        orders = self.repository.find(**filters)
        return [OrderResponse.model_validate(o) for o in orders]

    # Seeding queries

    def all_orders(self, channel: Channel) -> List[OrderResponse]:
        """Unfiltered history of one channel, newest first."""
        return self._snapshots(channel=Channel(channel).value)

    def todays_orders(self, channel: Channel, now: Optional[datetime] = None) -> List[OrderResponse]:
        since, until = time_windows.today_window(now)
        return self._snapshots(channel=Channel(channel).value, since=since, until=until)

    def user_orders(self, channel: Channel, username: str) -> List[OrderResponse]:
        return self._snapshots(channel=Channel(channel).value, username=username)

    def latest_user_orders(self, channel: Channel, username: str,
                           limit: Optional[int] = None) -> List[OrderResponse]:
        limit = settings.LATEST_ORDERS_LIMIT if limit is None else limit
        return self._snapshots(channel=Channel(channel).value, username=username, limit=limit)

    def kitchen_approved(self, now: Optional[datetime] = None) -> List[OrderResponse]:
        """Today's approved dine orders that are still unpaid."""
        since, until = time_windows.today_window(now)
        return self._snapshots(
            channel=Channel.DINE.value, since=since, until=until,
            order_statuses=[OrderStatus.APPROVED.value],
            payment_status=PaymentStatus.PENDING.value,
        )

    def courier_orders(self, courier_id: int, now: Optional[datetime] = None) -> List[OrderResponse]:
        """Today's approved or completed online orders of one courier, not yet paid."""
        since, until = time_windows.today_window(now)
        return self._snapshots(
            channel=Channel.ONLINE.value, since=since, until=until,
            order_statuses=ACTIVE_DELIVERY_STATUSES,
            payment_status_not=PaymentStatus.PAID.value,
            deliveryman_id=courier_id,
        )

    def unassigned_pool(self, now: Optional[datetime] = None) -> List[OrderResponse]:
        """Today's approved, unpaid online orders with no courier."""
        since, until = time_windows.today_window(now)
        return self._snapshots(
            channel=Channel.ONLINE.value, since=since, until=until,
            order_statuses=[OrderStatus.APPROVED.value],
            payment_status_not=PaymentStatus.PAID.value,
            unassigned=True,
        )

    # Reporting queries

    def _paid_completed(self, channel: Channel, since: datetime, until: datetime, **extra):
        return dict(
            channel=Channel(channel).value, since=since, until=until,
            order_statuses=[OrderStatus.COMPLETED.value],
            payment_status=PaymentStatus.PAID.value,
            **extra,
        )

    def paid_completed_for_month(self, channel: Channel, month: str) -> List[OrderResponse]:
        year, month_number = time_windows.parse_month(month)
        since, until = time_windows.month_window(year, month_number)
        return self._snapshots(**self._paid_completed(channel, since, until))

    def paid_completed_for_date(self, channel: Channel, day: str) -> List[OrderResponse]:
        since, until = time_windows.day_window(time_windows.parse_day(day))
        return self._snapshots(**self._paid_completed(channel, since, until))

    def paid_completed_current_month(self, channel: Channel, page: int = 1,
                                     limit: Optional[int] = None,
                                     now: Optional[datetime] = None) -> OrderPage:
        """
        Paginated paid/completed orders of the current business month.

        Args:
            page: 1-based page number
            limit: page size (default DEFAULT_PAGE_SIZE)
        """
        limit = settings.DEFAULT_PAGE_SIZE if limit is None else limit
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        since, until = time_windows.current_month_window(now)
        filters = self._paid_completed(channel, since, until)

        total = self.repository.count(**filters)
        orders = self._snapshots(skip=(page - 1) * limit, limit=limit, **filters)

        logger.debug(
            "Current month report page",
            extra={"channel": Channel(channel).value, "page": page, "limit": limit, "total": total}
        )
        return OrderPage(orders=orders, total=total, page=page, pages=math.ceil(total / limit))
