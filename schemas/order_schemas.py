from datetime import datetime, timezone
from typing import Optional

import phonenumbers
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.config import settings
from models.enums import Channel, OrderStatus, PaymentStatus


class OrderItemDraft(BaseModel):
    """
    One line of a draft order as sent by the client.

    Quantities and prices are checked by the state machine so that every
    caller (HTTP or not) gets the same ValidationError; `total_price` is
    accepted for compatibility and always recomputed.
    """
    item_id: str
    item_name: str
    qty: int
    item_price: float
    total_price: Optional[float] = None


class DineOrderDraft(BaseModel):
    username: str = Field(..., min_length=1)
    table_number: int
    items: list[OrderItemDraft]
    total_amt: Optional[float] = None

    @field_validator('table_number')
    @classmethod
    def validate_table_number(cls, value):
        if value < 1 or value > settings.MAX_TABLE_NUMBER:
            raise ValueError(f'Table number must be between 1 and {settings.MAX_TABLE_NUMBER}')
        return value


class OnlineOrderDraft(BaseModel):
    username: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    mobile_no: str
    items: list[OrderItemDraft]
    total_amt: Optional[float] = None

    @field_validator('mobile_no')
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)


def normalize_phone(value: str) -> str:
    """
    Validates a phone number with Google's phonenumbers library and returns it
    in E.164. Numbers without a country code are read in PHONE_REGION.
    """
    try:
        parsed = phonenumbers.parse(value, settings.PHONE_REGION)
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError('Invalid phone number')

        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

    except phonenumbers.NumberParseException:
        raise ValueError('Invalid phone number format')


class EditItemsRequest(BaseModel):
    newItems: list[OrderItemDraft]


class OrderStatusUpdate(BaseModel):
    order_status: OrderStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class AssignCourierRequest(BaseModel):
    deliverymanId: int


class CourierRef(BaseModel):
    """Resolved courier identity embedded in online order snapshots."""
    id: int
    name: str
    mobile_no: str

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(BaseModel):
    item_id: str
    item_name: str
    qty: int
    item_price: float
    total_price: float

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """
    Full order snapshot.

    This is the only shape the core hands out: HTTP responses, snapshot
    queries and broker events all carry it, so consumers can merge them
    without a second fetch.
    """
    order_id: str
    channel: Channel
    username: str
    order_time: datetime
    items: list[OrderItemResponse]
    total_amt: float
    order_status: OrderStatus
    payment_status: PaymentStatus
    completion_time: Optional[datetime] = None
    table_number: Optional[int] = None
    address: Optional[str] = None
    mobile_no: Optional[str] = None
    deliveryman: Optional[CourierRef] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator('order_time', 'completion_time')
    @classmethod
    def assume_utc(cls, value):
        # The store keeps naive UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class OrderPage(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    pages: int


class OrderEnvelope(BaseModel):
    message: str
    order: OrderResponse


