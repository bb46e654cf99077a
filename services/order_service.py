import logging
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy import or_
from typing import Callable, List, Optional, Tuple

from models import Order, OrderItem, OrderStatus, PaymentStatus, Restaurant, User, UserRole
import schemas
from . import order_state
from errors import Forbidden, InvalidTransition, NotFound, ValidationError

logger = logging.getLogger(__name__)

# Attempts at committing a mutation that keeps losing the optimistic-lock race
MAX_WRITE_ATTEMPTS = 3

DRIVER_STATUS_TARGETS = frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED})
CUSTOMER_CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def _owns_restaurant(actor: User, order: Order) -> bool:
    return order.restaurant is not None and order.restaurant.owner_id == actor.id


def can_view(actor: User, order: Order) -> bool:
    if actor.role == UserRole.ADMIN:
        return True
    if actor.role == UserRole.CUSTOMER:
        return order.user_id == actor.id
    if actor.role == UserRole.RESTAURANT_OWNER:
        return _owns_restaurant(actor, order)
    if actor.role == UserRole.DRIVER:
        if order.driver_id == actor.id:
            return True
        # Unassigned orders are visible to drivers so they can accept them
        return order.driver_id is None and order.status in order_state.DRIVER_ASSIGNABLE_STATUSES
    return False


class OrderService:
    @staticmethod
    def get_orders(db: Session, actor: User, status: Optional[str] = None, restaurant_id: Optional[int] = None,
                   page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
        query = db.query(Order)

        if actor.role == UserRole.CUSTOMER:
            query = query.filter(Order.user_id == actor.id)
        elif actor.role == UserRole.RESTAURANT_OWNER:
            owned = db.query(Restaurant.id).filter(Restaurant.owner_id == actor.id)
            query = query.filter(Order.restaurant_id.in_(owned))
        elif actor.role == UserRole.DRIVER:
            query = query.filter(or_(
                Order.driver_id == actor.id,
                (Order.driver_id.is_(None)) & (Order.status.in_(order_state.DRIVER_ASSIGNABLE_STATUSES)),
            ))

        if status:
            query = query.filter(Order.status == status)
        if restaurant_id is not None:
            query = query.filter(Order.restaurant_id == restaurant_id)

        total = query.count()
        orders = (
            query.options(selectinload(Order.order_items), selectinload(Order.status_history))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return orders, total

    @staticmethod
    def get_order(db: Session, order_id: int, for_update: bool = False) -> Optional[Order]:
        query = db.query(Order).options(joinedload(Order.restaurant)).filter(Order.id == order_id)
        if for_update:
            # Re-read the persisted row so validation never runs against a cached status
            query = query.populate_existing().with_for_update(of=Order)
        return query.first()

    @staticmethod
    def get_visible_order(db: Session, order_id: int, actor: User, for_update: bool = False) -> Order:
        order = OrderService.get_order(db, order_id, for_update=for_update)
        if not order:
            raise NotFound("Order not found")
        if not can_view(actor, order):
            raise Forbidden("Not authorized to access this order")
        return order

    @staticmethod
    def create_order(db: Session, customer: User, data: schemas.OrderCreate) -> Order:
        restaurant = db.query(Restaurant).filter(Restaurant.id == data.restaurant_id).first()
        if not restaurant:
            raise ValidationError(f"Restaurant {data.restaurant_id} not found")

        total_amount = sum(item.price * item.quantity for item in data.items)
        try:
            db_order = Order(
                user_id=customer.id,
                restaurant_id=restaurant.id,
                status=OrderStatus.PENDING,
                payment_method=data.payment_method,
                payment_status=PaymentStatus.PENDING,
                total_amount=round(total_amount, 2),
                delivery_address=data.delivery_address,
                delivery_latitude=data.delivery_latitude,
                delivery_longitude=data.delivery_longitude,
            )
            db.add(db_order)
            db.flush()  # Get order.id for items

            for item in data.items:
                db.add(OrderItem(order_id=db_order.id, name=item.name, quantity=item.quantity, price=item.price))

            db.commit()
            db.refresh(db_order)
            return db_order
        except Exception:
            db.rollback()
            logger.exception("Error creating order for user %s", customer.id)
            raise

    @staticmethod
    def apply(db: Session, order: Order, mutate: Callable[[Order], None]) -> Order:
        """Run ``mutate`` on ``order`` and commit it under the optimistic lock.

        When another writer committed first, the session is rolled back, the
        order reloaded, and ``mutate`` evaluated again against the new
        persisted state, so it either applies cleanly or raises.
        """
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            mutate(order)
            try:
                db.commit()
            except StaleDataError:
                db.rollback()
                logger.warning("Order %s changed concurrently (attempt %s), re-validating", order.id, attempt)
                continue
            db.refresh(order)
            return order

        raise InvalidTransition(f"Order {order.id} keeps changing concurrently, please retry")

    @staticmethod
    def update_status(db: Session, order_id: int, status: str, actor: User, notes: Optional[str] = None) -> Order:
        order = OrderService.get_visible_order(db, order_id, actor, for_update=True)

        def mutate(o: Order):
            if actor.role == UserRole.CUSTOMER:
                raise Forbidden("Customers cannot update order status")
            if actor.role == UserRole.DRIVER:
                if o.driver_id != actor.id:
                    raise Forbidden("Not your order")
                if status not in DRIVER_STATUS_TARGETS:
                    raise Forbidden(f"Drivers cannot set status {status}")
            order_state.transition(o, status, actor=actor, notes=notes)

        return OrderService.apply(db, order, mutate)

    @staticmethod
    def assign_driver(db: Session, order_id: int, driver_id: int, actor: User) -> Order:
        order = OrderService.get_visible_order(db, order_id, actor, for_update=True)
        driver = db.query(User).filter(User.id == driver_id).first()

        def mutate(o: Order):
            if actor.role == UserRole.CUSTOMER:
                raise Forbidden("Customers cannot assign drivers")
            if actor.role == UserRole.DRIVER:
                # A driver may only accept an unassigned order for themself
                if driver_id != actor.id:
                    raise Forbidden("Drivers can only assign themselves")
                if o.driver_id is not None and o.driver_id != actor.id:
                    raise Forbidden("Order already assigned")
            order_state.assign_driver(o, driver)

        return OrderService.apply(db, order, mutate)

    @staticmethod
    def mark_payment(db: Session, order_id: int, payment_status: str, actor: User) -> Order:
        order = OrderService.get_visible_order(db, order_id, actor, for_update=True)
        if payment_status != PaymentStatus.PAID:
            raise ValidationError(f"Payment status can only be set to '{PaymentStatus.PAID}' manually")

        return OrderService.apply(db, order, order_state.mark_cash_received)

    @staticmethod
    def cancel_order(db: Session, order_id: int, actor: User, reason: Optional[str] = None) -> Order:
        order = OrderService.get_visible_order(db, order_id, actor, for_update=True)

        def mutate(o: Order):
            if actor.role == UserRole.CUSTOMER and o.user_id != actor.id:
                raise Forbidden("Not authorized")
            if actor.role == UserRole.DRIVER:
                raise Forbidden("Drivers cannot cancel orders")
            if actor.role == UserRole.CUSTOMER and o.status not in CUSTOMER_CANCELLABLE_STATUSES \
                    and not order_state.is_terminal(o.status):
                raise InvalidTransition("Cannot cancel order at this stage")
            order_state.transition(o, OrderStatus.CANCELLED, actor=actor, notes=reason)

        return OrderService.apply(db, order, mutate)
