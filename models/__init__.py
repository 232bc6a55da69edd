from models.couriers import Courier
from models.orders import Order
from models.order_items import OrderItem

__all__ = ["Courier", "Order", "OrderItem"]
