from enum import Enum


class Channel(str, Enum):
    DINE = "dine"
    ONLINE = "online"


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class EventKind(str, Enum):
    NEW_ORDER = "newOrder"
    ORDER_UPDATE = "orderUpdate"
