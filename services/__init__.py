from .order_service import OrderService
from .tracking_service import TrackingService
from .notification_service import NotificationService
from .driver_service import DriverService
from .broadcast import room_manager

__all__ = ["OrderService", "TrackingService", "NotificationService", "DriverService", "room_manager"]
