from datetime import datetime, timedelta

import pytest

from errors import InvalidTransition, OrderFinalized, ValidationError
from models import Order, OrderStatus, PaymentMethod, PaymentStatus, User, UserRole
from services import order_state

LIFECYCLE = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]


def new_order(status=OrderStatus.PENDING, payment_method=PaymentMethod.CARD, payment_status=PaymentStatus.PENDING):
    return Order(id=1, user_id=1, restaurant_id=1, status=status, payment_method=payment_method,
                 payment_status=payment_status, total_amount=10.0, delivery_address="Somewhere")


def new_driver(user_id=7, role=UserRole.DRIVER, is_active=True):
    return User(id=user_id, name="Dan", email=f"dan{user_id}@example.com", role=role, is_active=is_active)


@pytest.mark.parametrize("current", [s for s in OrderStatus.ALL if s not in order_state.TERMINAL_STATUSES])
@pytest.mark.parametrize("target", OrderStatus.ALL)
def test_only_forward_step_and_cancel_are_allowed(current, target):
    order = new_order(status=current)
    allowed = target in (order_state.FORWARD[current], OrderStatus.CANCELLED)

    if allowed:
        order_state.transition(order, target)
        assert order.status == target
        assert len(order.status_history) == 1
    else:
        with pytest.raises(InvalidTransition):
            order_state.transition(order, target)
        assert order.status == current
        assert order.status_history == []


@pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
@pytest.mark.parametrize("target", OrderStatus.ALL)
def test_terminal_orders_reject_every_transition(terminal, target):
    order = new_order(status=terminal)
    with pytest.raises(OrderFinalized):
        order_state.transition(order, target)
    assert order.status == terminal


def test_unknown_status_is_a_validation_error():
    order = new_order()
    with pytest.raises(ValidationError):
        order_state.transition(order, "teleported")


def test_full_lifecycle_appends_one_history_entry_per_step():
    order = new_order()
    actor = new_driver(user_id=3, role=UserRole.RESTAURANT_OWNER)
    for expected_len, status in enumerate(LIFECYCLE[1:], start=1):
        order_state.transition(order, status, actor=actor)
        assert len(order.status_history) == expected_len
        assert order.status_history[-1].status == status
        assert order.status_history[-1].updated_by == 3

    assert order.status == OrderStatus.DELIVERED
    assert order.actual_delivery_time == order.status_history[-1].timestamp
    with pytest.raises(OrderFinalized):
        order_state.transition(order, OrderStatus.CANCELLED)
    assert len(order.status_history) == 5


def test_skipping_a_step_is_rejected():
    order = new_order()
    order_state.transition(order, OrderStatus.CONFIRMED)
    with pytest.raises(InvalidTransition):
        order_state.transition(order, OrderStatus.OUT_FOR_DELIVERY)
    assert order.status == OrderStatus.CONFIRMED
    assert len(order.status_history) == 1


def test_history_timestamps_never_go_backwards():
    order = new_order()
    later = datetime(2024, 5, 1, 12, 0, 0)
    order_state.transition(order, OrderStatus.CONFIRMED, now=later)
    order_state.transition(order, OrderStatus.PREPARING, now=later - timedelta(minutes=5))

    first, second = order.status_history
    assert second.timestamp >= first.timestamp


def test_confirming_sets_estimated_delivery_time():
    order = new_order()
    now = datetime(2024, 5, 1, 12, 0, 0)
    order_state.transition(order, OrderStatus.CONFIRMED, now=now)
    assert order.estimated_delivery_time > now


def test_cancel_keeps_reason():
    order = new_order(status=OrderStatus.PREPARING)
    order_state.transition(order, OrderStatus.CANCELLED, notes="Out of stock")
    assert order.status == OrderStatus.CANCELLED
    assert order.cancellation_reason == "Out of stock"
    assert order.status_history[-1].notes == "Out of stock"


@pytest.mark.parametrize("status", sorted(order_state.DRIVER_ASSIGNABLE_STATUSES))
def test_assign_driver_leaves_status_untouched(status):
    order = new_order(status=status)
    driver = new_driver()
    order_state.assign_driver(order, driver)
    assert order.driver_id == driver.id
    assert order.status == status
    assert order.status_history == []


def test_assign_driver_replaces_previous_driver():
    order = new_order(status=OrderStatus.PREPARING)
    order_state.assign_driver(order, new_driver(user_id=7))
    order_state.assign_driver(order, new_driver(user_id=8))
    assert order.driver_id == 8


def test_assign_driver_requires_assignable_status():
    with pytest.raises(InvalidTransition):
        order_state.assign_driver(new_order(status=OrderStatus.PENDING), new_driver())
    with pytest.raises(InvalidTransition):
        order_state.assign_driver(new_order(status=OrderStatus.OUT_FOR_DELIVERY), new_driver())
    with pytest.raises(OrderFinalized):
        order_state.assign_driver(new_order(status=OrderStatus.DELIVERED), new_driver())


@pytest.mark.parametrize("driver", [
    None,
    new_driver(role=UserRole.CUSTOMER),
    new_driver(is_active=False),
])
def test_assign_driver_rejects_unavailable_drivers(driver):
    order = new_order(status=OrderStatus.CONFIRMED)
    with pytest.raises(ValidationError):
        order_state.assign_driver(order, driver)
    assert order.driver_id is None


def test_mark_cash_received():
    order = new_order(status=OrderStatus.DELIVERED, payment_method=PaymentMethod.CASH)
    order_state.mark_cash_received(order)
    assert order.payment_status == PaymentStatus.PAID
    assert order.status == OrderStatus.DELIVERED

    with pytest.raises(ValidationError):
        order_state.mark_cash_received(order)


def test_mark_cash_received_rejects_card_orders():
    order = new_order(payment_method=PaymentMethod.CARD)
    with pytest.raises(ValidationError):
        order_state.mark_cash_received(order)
    assert order.payment_status == PaymentStatus.PENDING
