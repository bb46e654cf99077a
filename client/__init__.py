"""Python client for the orders API and the live tracking channel."""
from .session import Session
from .orders import OrdersClient
from .channel import Channel, MemoryChannel, WebSocketChannel
from .tracking import OrderSubscription, RestaurantSubscription


def track_order(order_id, session: Session, channel: Channel = None, **kwargs) -> OrderSubscription:
    """Open a live subscription for one order, connecting a WebSocket channel when none is given."""
    if channel is None:
        channel = WebSocketChannel(session.ws_url())
        channel.connect()
    return OrderSubscription(order_id, channel, OrdersClient(session), **kwargs).open()


def watch_restaurant(restaurant_id, session: Session, channel: Channel = None, **kwargs) -> RestaurantSubscription:
    if channel is None:
        channel = WebSocketChannel(session.ws_url())
        channel.connect()
    return RestaurantSubscription(restaurant_id, channel, OrdersClient(session), **kwargs).open()


__all__ = [
    "Session",
    "OrdersClient",
    "Channel",
    "MemoryChannel",
    "WebSocketChannel",
    "OrderSubscription",
    "RestaurantSubscription",
    "track_order",
    "watch_restaurant",
]
