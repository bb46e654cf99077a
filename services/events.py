"""Events pushed to channel rooms after a write has been committed."""
from typing import Any, Dict

from models import Order
import schemas
from .broadcast import room_manager, order_room, restaurant_room, user_room


def order_snapshot(order: Order) -> Dict[str, Any]:
    return schemas.OrderResponse.model_validate(order).model_dump(mode="json")


async def publish_order_updated(order: Order, manager=room_manager):
    await manager.emit_many(
        [order_room(order.id), restaurant_room(order.restaurant_id), user_room(order.user_id)],
        "orderUpdated",
        {"order": order_snapshot(order)},
    )


async def publish_new_order(order: Order, manager=room_manager):
    await manager.emit(restaurant_room(order.restaurant_id), "newOrder", {"order": order_snapshot(order)})


async def publish_driver_location(order_id: int, driver_id: int, location: schemas.LocationSample,
                                  manager=room_manager):
    await manager.emit(order_room(order_id), "driverLocation", {
        "order_id": order_id,
        "driver_id": driver_id,
        "location": location.model_dump(mode="json"),
        "timestamp": location.last_updated.isoformat(),
    })
