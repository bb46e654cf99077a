from .user import UserLogin, UserResponse, UserSummary, Token, TokenData
from .order import (
    OrderStatusName,
    PaymentStatusName,
    OrderItemCreate,
    OrderItemResponse,
    StatusHistoryEntry,
    OrderCreate,
    OrderResponse,
    OrderEnvelope,
    OrderPage,
    OrderListEnvelope
)
from .commands import (
    StatusUpdate,
    DriverAssignment,
    PaymentUpdate,
    CancelRequest,
    UpdateStatusCommand,
    AssignDriverCommand,
    MarkPaymentCommand,
    CancelOrderCommand,
    Command,
    parse_command
)
from .tracking import LocationUpdate, LocationSample, DriverLocationResponse, TrackingSnapshot, TrackingEnvelope
from .notification import DeviceTokenRegister, NotificationResponse
from .driver import DriverAvailabilityUpdate, DriverProfile, NearbyDriver

__all__ = [
    "UserLogin", "UserResponse", "UserSummary", "Token", "TokenData",
    "OrderStatusName", "PaymentStatusName",
    "OrderItemCreate", "OrderItemResponse", "StatusHistoryEntry", "OrderCreate", "OrderResponse",
    "OrderEnvelope", "OrderPage", "OrderListEnvelope",
    "StatusUpdate", "DriverAssignment", "PaymentUpdate", "CancelRequest",
    "UpdateStatusCommand", "AssignDriverCommand", "MarkPaymentCommand", "CancelOrderCommand",
    "Command", "parse_command",
    "LocationUpdate", "LocationSample", "DriverLocationResponse", "TrackingSnapshot", "TrackingEnvelope",
    "DeviceTokenRegister", "NotificationResponse",
    "DriverAvailabilityUpdate", "DriverProfile", "NearbyDriver"
]
