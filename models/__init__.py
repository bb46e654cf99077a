from .base import Base
from .user import User, UserRole
from .restaurant import Restaurant
from .order import Order, OrderItem, OrderStatusHistory, OrderStatus, PaymentMethod, PaymentStatus
from .tracking import DriverLocation
from .notification import DeviceToken, Notification

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Restaurant",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "DriverLocation",
    "DeviceToken",
    "Notification"
]
