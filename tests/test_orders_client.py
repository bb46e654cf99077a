import pydantic
import pytest

from auth import create_user_token
from client import MemoryChannel, OrderSubscription, OrdersClient, Session
from client.orders import error_from_response
from errors import Forbidden, InvalidTransition, NotFound, OrderFinalized, Unauthorized, ValidationError
from models import OrderStatus, PaymentMethod
from schemas.commands import AssignDriverCommand, UpdateStatusCommand, parse_command


@pytest.fixture
def client_for(client):
    def _client_for(user=None):
        token = create_user_token(user) if user is not None else None
        return OrdersClient(Session("http://testserver", token=token), http=client)
    return _client_for


class RefusingHttp:
    def request(self, *args, **kwargs):
        raise AssertionError("no request expected")


def test_parse_command_picks_kind():
    command = parse_command({"kind": "update_status", "order_id": 3, "status": "confirmed"})
    assert isinstance(command, UpdateStatusCommand)

    command = parse_command(AssignDriverCommand(order_id=3, driver_id=4))
    assert isinstance(command, AssignDriverCommand)

    with pytest.raises(pydantic.ValidationError):
        parse_command({"kind": "refund_everything", "order_id": 3})
    with pytest.raises(pydantic.ValidationError):
        parse_command({"kind": "update_status", "order_id": 3, "status": "teleported"})


def test_invalid_commands_never_reach_the_server():
    orders = OrdersClient(Session("http://testserver"), http=RefusingHttp())
    with pytest.raises(ValidationError):
        orders.update_status(1, "teleported")
    with pytest.raises(ValidationError):
        orders.dispatch({"kind": "assign_driver", "order_id": 0, "driver_id": 2})


def test_error_from_response_maps_codes_and_statuses():
    error = error_from_response(409, {"status": "fail", "code": "order_finalized", "message": "done"})
    assert isinstance(error, OrderFinalized)
    assert error.message == "done"
    assert isinstance(error_from_response(409, {}), InvalidTransition)
    assert isinstance(error_from_response(404, {"detail": "Not Found"}), NotFound)
    assert isinstance(error_from_response(422, {"detail": [{"msg": "bad"}]}), ValidationError)


def test_commands_return_server_snapshot(client_for, make_order, owner):
    order = make_order()
    orders = client_for(owner)

    updated = orders.update_status(order.id, OrderStatus.CONFIRMED)
    assert updated["status"] == "confirmed"
    assert len(updated["status_history"]) == 1
    assert orders.get_order(order.id)["version"] == updated["version"]

    with pytest.raises(InvalidTransition):
        orders.update_status(order.id, OrderStatus.DELIVERED)

    cancelled = orders.cancel_order(order.id, reason="Kitchen closed")
    assert cancelled["status"] == "cancelled"
    with pytest.raises(OrderFinalized):
        orders.update_status(order.id, OrderStatus.PREPARING)


def test_driver_and_payment_commands(client_for, make_order, admin, driver):
    order = make_order(status=OrderStatus.CONFIRMED, payment_method=PaymentMethod.CASH)
    orders = client_for(admin)

    assert orders.assign_driver(order.id, driver.id)["driver_id"] == driver.id
    assert orders.mark_payment(order.id)["payment_status"] == "paid"
    with pytest.raises(ValidationError):
        orders.mark_payment(order.id)


def test_permission_errors(client_for, make_order, customer):
    order = make_order()
    with pytest.raises(Unauthorized):
        client_for().get_order(order.id)
    with pytest.raises(Forbidden):
        client_for(customer).update_status(order.id, OrderStatus.CONFIRMED)
    with pytest.raises(NotFound):
        client_for(customer).get_order(9999)


def test_queries(client_for, make_order, customer, restaurant):
    order = make_order()
    page = client_for(customer).list_orders(restaurant_id=restaurant.id)
    assert page["total"] == 1
    assert page["orders"][0]["id"] == order.id

    tracking = client_for(customer).get_tracking(order.id)
    assert tracking["order"]["id"] == order.id
    assert tracking["location"] is None


def test_subscription_over_rest_client(client_for, make_order, owner, customer):
    order = make_order()
    channel = MemoryChannel()
    channel.connect()

    with OrderSubscription(order.id, channel, client_for(customer)) as sub:
        assert sub.order["status"] == "pending"

        updated = client_for(owner).update_status(order.id, OrderStatus.CONFIRMED)
        channel.deliver("orderUpdated", {"order": updated}, room=f"order-{order.id}")
        assert sub.order["status"] == "confirmed"

        # A reconnect re-fetches the same snapshot; nothing changes
        channel.drop()
        channel.restore()
        assert sub.order["version"] == updated["version"]
        assert sub.order["status"] == "confirmed"
