from core.database import Base
from sqlalchemy import (Column, Integer, String, Numeric, ForeignKey, CheckConstraint)
from sqlalchemy.orm import relationship

class OrderItem(Base):
    __tablename__ = "order_items"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_pk = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    order = relationship("Order", back_populates="items")

    position = Column(Integer, nullable=False)
    item_id = Column(String, nullable=False)
    item_name = Column(String, nullable=False)
    qty = Column(Integer, nullable=False)
    item_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("qty > 0", name="check_qty_positive"),
    )
