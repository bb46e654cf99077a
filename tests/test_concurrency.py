import pytest

from database import SessionLocal
from errors import InvalidTransition
from models import OrderStatus
from services import OrderService
from services import order_state


@pytest.fixture
def two_sessions():
    first, second = SessionLocal(), SessionLocal()
    try:
        yield first, second
    finally:
        first.close()
        second.close()


def test_losing_writer_is_revalidated_against_persisted_status(two_sessions, make_order, owner, admin):
    order = make_order()
    first, second = two_sessions

    seen_by_first = OrderService.get_order(first, order.id)
    seen_by_second = OrderService.get_order(second, order.id)

    OrderService.apply(first, seen_by_first,
                       lambda o: order_state.transition(o, OrderStatus.CONFIRMED, actor=owner))

    # The second writer still holds a pending snapshot in memory
    assert seen_by_second.status == OrderStatus.PENDING
    with pytest.raises(InvalidTransition):
        OrderService.apply(second, seen_by_second,
                           lambda o: order_state.transition(o, OrderStatus.CONFIRMED, actor=admin))

    check = SessionLocal()
    try:
        persisted = OrderService.get_order(check, order.id)
        assert persisted.status == OrderStatus.CONFIRMED
        assert [h.status for h in persisted.status_history] == [OrderStatus.CONFIRMED]
    finally:
        check.close()


def test_losing_writer_still_applies_when_valid_on_new_state(two_sessions, make_order, owner, admin):
    order = make_order()
    first, second = two_sessions

    seen_by_first = OrderService.get_order(first, order.id)
    seen_by_second = OrderService.get_order(second, order.id)

    OrderService.apply(first, seen_by_first,
                       lambda o: order_state.transition(o, OrderStatus.CONFIRMED, actor=owner))
    result = OrderService.apply(second, seen_by_second,
                                lambda o: order_state.transition(o, OrderStatus.CANCELLED, actor=admin))

    assert result.status == OrderStatus.CANCELLED
    history = result.status_history
    assert [h.status for h in history] == [OrderStatus.CONFIRMED, OrderStatus.CANCELLED]
    assert history[0].timestamp <= history[1].timestamp
    assert result.version == 3


def test_sequential_updates_through_service(db, make_order, owner):
    order = make_order()
    OrderService.update_status(db, order.id, OrderStatus.CONFIRMED, owner)
    updated = OrderService.update_status(db, order.id, OrderStatus.PREPARING, owner)
    assert updated.status == OrderStatus.PREPARING
    assert len(updated.status_history) == 2
