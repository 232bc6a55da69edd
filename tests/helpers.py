from datetime import datetime

from jose import jwt

from core.config import settings
from models.enums import Channel, OrderStatus, PaymentStatus
from schemas.order_schemas import CourierRef, OrderResponse


def make_staff_token(role: str = "Manager", staff_id: int = 1, username: str = "manager",
                     token_type: str = "access") -> str:
    """Sign a token the way the admin login service does."""
    payload = {"sub": username, "id": staff_id, "role": role, "type": token_type}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def dine_payload(username: str = "asha", table_number: int = 4, items=None) -> dict:
    return {
        "username": username,
        "table_number": table_number,
        "items": items or [
            {"item_id": "thali", "item_name": "Veg Thali", "qty": 2, "item_price": 120},
            {"item_id": "lassi", "item_name": "Sweet Lassi", "qty": 1, "item_price": 40},
        ],
    }


def online_payload(username: str = "vikram", items=None) -> dict:
    return {
        "username": username,
        "address": "12 MG Road, Bengaluru",
        "mobile_no": "9876543210",
        "items": items or [{"item_id": "biryani", "item_name": "Biryani", "qty": 2, "item_price": 50}],
    }


def make_snapshot(order_id: str = "order_000000000001", *, channel=Channel.ONLINE,
                  username: str = "vikram", order_time: datetime = datetime(2026, 3, 14, 12, 0),
                  order_status=OrderStatus.PENDING, payment_status=PaymentStatus.PENDING,
                  deliveryman_id=None) -> OrderResponse:
    """An order snapshot as the broker would carry it, without touching the database."""
    return OrderResponse(
        order_id=order_id,
        channel=channel,
        username=username,
        order_time=order_time,
        items=[{"item_id": "biryani", "item_name": "Biryani", "qty": 2, "item_price": 50.0, "total_price": 100.0}],
        total_amt=100.0,
        order_status=order_status,
        payment_status=payment_status,
        completion_time=datetime(2026, 3, 14, 13, 0) if order_status == OrderStatus.COMPLETED else None,
        table_number=3 if channel == Channel.DINE else None,
        address="12 MG Road" if channel == Channel.ONLINE else None,
        mobile_no="+919876543210" if channel == Channel.ONLINE else None,
        deliveryman=(
            CourierRef(id=deliveryman_id, name=f"courier-{deliveryman_id}", mobile_no="+919876500001")
            if deliveryman_id is not None else None
        ),
    )
