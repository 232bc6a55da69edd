from core.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import (Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, Index, CheckConstraint)
from .mixins import UpdatedAtMixin

class Order(Base, UpdatedAtMixin):
    """
    Dine-in and online orders share one table, discriminated by `channel`.

    Dine orders use `table_number`; online orders use `address`, `mobile_no`
    and the weak `deliveryman_id` reference. `order_time` and `order_id` are
    assigned at creation and never written again.
    """
    __tablename__ = "orders"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    deliveryman_id = Column(Integer, ForeignKey("couriers.id", ondelete="SET NULL"), nullable=True, index=True)

    #relationships
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.position",
                         cascade="all, delete-orphan")
    deliveryman = relationship("Courier", back_populates="orders")

    order_id = Column(String(64), unique=True, nullable=False, index=True)
    channel = Column(Enum("dine", "online", name="order_channel"), nullable=False)
    username = Column(String, nullable=False, index=True)
    order_time = Column(DateTime, nullable=False)
    total_amt = Column(Numeric(10, 2), nullable=False)
    order_status = Column(Enum("pending", "approved", "completed", name="order_status"),
                          nullable=False, default="pending", index=True)
    payment_status = Column(Enum("pending", "paid", "failed", name="payment_status"),
                            nullable=False, default="pending", index=True)
    completion_time = Column(DateTime, nullable=True)

    # dine
    table_number = Column(Integer, nullable=True)

    # online
    address = Column(String, nullable=True)
    mobile_no = Column(String(20), nullable=True)

    __table_args__ = (
        Index("ix_orders_channel_order_time", "channel", "order_time"),
        CheckConstraint("total_amt >= 0", name="check_total_amt_non_negative"),
    )

    def __repr__(self):
        return f"<Order(order_id={self.order_id!r}, channel={self.channel!r}, status={self.order_status!r}/{self.payment_status!r})>"
