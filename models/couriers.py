from core.database import Base
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin

class Courier(Base, CreatedAtMixin):
    """
    Delivery person. Online orders point at a courier by id; they never own it.
    Deleting a courier leaves its orders unassigned.
    """
    __tablename__ = "couriers"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    orders = relationship("Order", back_populates="deliveryman")

    name = Column(String, unique=True, nullable=False)
    mobile_no = Column(String(20), nullable=False)
    hashed_password = Column(String, nullable=False)
