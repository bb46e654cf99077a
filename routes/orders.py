import logging
from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from models import Order, User, UserRole
import schemas
from auth import get_current_active_user, require_roles
from services import OrderService, TrackingService, NotificationService
from services.events import publish_order_updated, publish_new_order
from services.push import get_messaging
from .limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def order_envelope(order: Order) -> schemas.OrderEnvelope:
    return schemas.OrderEnvelope(data={"order": schemas.OrderResponse.model_validate(order)})


def _notify_status_change(db: Session, order: Order):
    try:
        NotificationService.notify_status_change(db, order, get_messaging())
    except Exception as e:
        # The status change is already committed; a failed notification must not undo it
        db.rollback()
        logger.warning("Failed to notify customer of order %s: %s", order.id, e)


async def _after_write(db: Session, order: Order, status_changed: bool = False):
    await publish_order_updated(order)
    if status_changed:
        # FCM sends block, keep them off the loop serving the tracking sockets
        await run_in_threadpool(_notify_status_change, db, order)


@router.get("", response_model=schemas.OrderListEnvelope)
async def list_orders(
    status: Optional[schemas.OrderStatusName] = None,
    restaurant_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """List orders visible to the caller, newest first"""
    orders, total = OrderService.get_orders(db, current_user, status, restaurant_id, page, limit)
    return schemas.OrderListEnvelope(data=schemas.OrderPage(
        orders=[schemas.OrderResponse.model_validate(o) for o in orders],
        page=page,
        limit=limit,
        total=total,
    ))


@router.post("", response_model=schemas.OrderEnvelope, status_code=201)
@limiter.limit("10/minute")
async def create_order(
    request: Request,
    order_in: schemas.OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.CUSTOMER))
):
    """Place an order (customers only)"""
    order = OrderService.create_order(db, current_user, order_in)
    await publish_new_order(order)
    return order_envelope(order)


@router.get("/{order_id}", response_model=schemas.OrderEnvelope)
async def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get a single order with its status history"""
    return order_envelope(OrderService.get_visible_order(db, order_id, current_user))


@router.get("/{order_id}/tracking", response_model=schemas.TrackingEnvelope)
async def get_order_tracking(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Tracking snapshot used to initialise a live view"""
    order = OrderService.get_visible_order(db, order_id, current_user)
    return schemas.TrackingEnvelope(data=TrackingService.get_tracking(db, order))


@router.patch("/{order_id}/status", response_model=schemas.OrderEnvelope)
@limiter.limit("60/minute")
async def update_order_status(
    request: Request,
    order_id: int,
    status_update: schemas.StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.RESTAURANT_OWNER, UserRole.DRIVER))
):
    """Move an order along its lifecycle (admin, restaurant owner, assigned driver)"""
    order = OrderService.update_status(db, order_id, status_update.status, current_user, status_update.notes)
    await _after_write(db, order, status_changed=True)
    return order_envelope(order)


@router.patch("/{order_id}/driver", response_model=schemas.OrderEnvelope)
@limiter.limit("30/minute")
async def assign_driver(
    request: Request,
    order_id: int,
    assignment: schemas.DriverAssignment,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.RESTAURANT_OWNER, UserRole.DRIVER))
):
    """Assign a driver; drivers may only accept an order for themselves"""
    order = OrderService.assign_driver(db, order_id, assignment.driver_id, current_user)
    await _after_write(db, order)
    return order_envelope(order)


@router.patch("/{order_id}/payment", response_model=schemas.OrderEnvelope)
@limiter.limit("30/minute")
async def mark_payment(
    request: Request,
    order_id: int,
    payment: schemas.PaymentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN))
):
    """Record cash received for a cash order (Admin only)"""
    order = OrderService.mark_payment(db, order_id, payment.payment_status, current_user)
    await _after_write(db, order)
    return order_envelope(order)


@router.patch("/{order_id}/cancel", response_model=schemas.OrderEnvelope)
@limiter.limit("10/minute")
async def cancel_order(
    request: Request,
    order_id: int,
    cancel: Optional[schemas.CancelRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel an order; customers only while it is pending or confirmed"""
    order = OrderService.cancel_order(db, order_id, current_user, cancel.reason if cancel else None)
    await _after_write(db, order, status_changed=True)
    return order_envelope(order)
