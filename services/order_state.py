"""Order status lifecycle.

    pending -> confirmed -> preparing -> ready_for_pickup -> out_for_delivery -> delivered

``cancelled`` is reachable from every non-terminal status. ``delivered`` and
``cancelled`` are terminal.

Functions here mutate the ORM instance in memory only; committing (and
emitting the resulting events) is the caller's job.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from config import ESTIMATED_DELIVERY_MINUTES
from models import Order, OrderStatusHistory, OrderStatus, PaymentMethod, PaymentStatus, User, UserRole
from errors import InvalidTransition, OrderFinalized, ValidationError

logger = logging.getLogger(__name__)

FORWARD = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY_FOR_PICKUP,
    OrderStatus.READY_FOR_PICKUP: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

DRIVER_ASSIGNABLE_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def allowed_targets(status: str) -> frozenset:
    if is_terminal(status):
        return frozenset()
    return frozenset({FORWARD[status], OrderStatus.CANCELLED})


def can_transition(current: str, target: str) -> bool:
    return target in allowed_targets(current)


def transition(
    order: Order,
    target_status: str,
    actor: Optional[User] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    if target_status not in OrderStatus.ALL:
        raise ValidationError(f"Unknown order status '{target_status}'")

    current = order.status
    if is_terminal(current):
        raise OrderFinalized(f"Order {order.id} is already {current}")
    if not can_transition(current, target_status):
        logger.info("Rejected transition %s -> %s for order %s", current, target_status, order.id)
        raise InvalidTransition(f"Cannot move order {order.id} from {current} to {target_status}")

    now = now or datetime.utcnow()
    # Keep history timestamps non-decreasing even if clocks disagree
    if order.status_history and order.status_history[-1].timestamp > now:
        now = order.status_history[-1].timestamp

    order.status = target_status
    order.status_history.append(OrderStatusHistory(
        status=target_status,
        timestamp=now,
        notes=notes,
        updated_by=actor.id if actor is not None else None,
    ))

    if target_status == OrderStatus.CONFIRMED and order.estimated_delivery_time is None:
        order.estimated_delivery_time = now + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES)
    elif target_status == OrderStatus.DELIVERED:
        order.actual_delivery_time = now
    elif target_status == OrderStatus.CANCELLED and notes:
        order.cancellation_reason = notes

    return order


def assign_driver(order: Order, driver: Optional[User]) -> Order:
    """Attach ``driver`` to the order, replacing any previous one. Status is untouched."""
    if is_terminal(order.status):
        raise OrderFinalized(f"Order {order.id} is already {order.status}")
    if order.status not in DRIVER_ASSIGNABLE_STATUSES:
        raise InvalidTransition(f"Cannot assign a driver while order {order.id} is {order.status}")
    if driver is None or driver.role != UserRole.DRIVER or not driver.is_active:
        raise ValidationError("Driver not found or not available")

    order.driver_id = driver.id
    order.driver = driver
    return order


def mark_cash_received(order: Order) -> Order:
    if order.payment_method != PaymentMethod.CASH:
        raise ValidationError(f"Order {order.id} is not a cash order")
    if order.payment_status == PaymentStatus.PAID:
        raise ValidationError(f"Order {order.id} is already paid")

    order.payment_status = PaymentStatus.PAID
    return order
