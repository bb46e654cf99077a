"""Subscription handles consumed by order tracking and order management views.

State only ever changes from server snapshots: a REST snapshot when a
subscription opens or the channel reconnects, then ``orderUpdated`` /
``newOrder`` / ``driverLocation`` events. Each order payload is a full
snapshot, so applying one twice is harmless and a snapshot with a lower
``version`` than the one held is ignored.
"""
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from errors import ChannelDisconnected
from .channel import Channel

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"delivered", "cancelled"})


def _same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _parse_time(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def is_newer_snapshot(current: Optional[dict], incoming: dict) -> bool:
    """True when ``incoming`` should replace ``current``."""
    if current is None:
        return True
    return incoming.get("version", 0) >= current.get("version", 0)


class Subscription:
    """Base handle: ``on_update(callback)`` and ``close()``."""

    def __init__(self, channel: Channel, orders, disconnect_threshold: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.channel = channel
        self.orders = orders
        self.disconnect_threshold = disconnect_threshold
        self.clock = clock
        self.closed = False
        self.disconnected_since: Optional[float] = None
        self._callbacks: List[Callable] = []
        self._lock = threading.RLock()
        self._events = {}

    def on_update(self, callback: Callable) -> Callable:
        """Register ``callback(state)``; called after every change of local state."""
        self._callbacks.append(callback)
        return callback

    def _notify(self):
        state = self.state
        for callback in list(self._callbacks):
            try:
                callback(state)
            except Exception:
                logger.exception("Subscription callback failed")

    @property
    def state(self) -> dict:
        raise NotImplementedError

    def _join(self):
        raise NotImplementedError

    def _leave(self):
        raise NotImplementedError

    def resync(self):
        raise NotImplementedError

    def open(self):
        self._events = {
            "connect": self._on_connect,
            "disconnect": self._on_disconnect,
            **self._event_handlers(),
        }
        for event, handler in self._events.items():
            self.channel.on(event, handler)
        # Join before the snapshot so changes made while it is fetched still arrive;
        # the version guard discards whichever copy is older
        self._join()
        if not self.channel.connected:
            self.disconnected_since = self.clock()
        try:
            self.resync()
        except Exception:
            self.close()
            raise
        return self

    def _event_handlers(self) -> Dict[str, Callable]:
        return {}

    def close(self):
        if self.closed:
            return
        self.closed = True
        # Leave the room before dropping handlers so the server stops fanning out to us
        self._leave()
        for event, handler in self._events.items():
            self.channel.off(event, handler)
        self._events = {}
        self._callbacks = []

    def _on_connect(self, _data=None):
        self.disconnected_since = None
        if self.closed:
            return
        # Missed events are never replayed, so reconcile from REST
        try:
            self.resync()
        except Exception as e:
            logger.warning("Resync after reconnect failed: %s", e)

    def _on_disconnect(self, _data=None):
        if self.disconnected_since is None:
            self.disconnected_since = self.clock()

    def poll(self) -> dict:
        """Fallback while the channel is down: refresh from REST.

        Raises ``ChannelDisconnected`` once the channel has been down longer
        than ``disconnect_threshold``; local state is refreshed either way.
        """
        if self.channel.connected:
            return self.state
        self.resync()
        if self.disconnected_since is not None and \
                self.clock() - self.disconnected_since > self.disconnect_threshold:
            raise ChannelDisconnected("Live updates unavailable, showing last known state")
        return self.state

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()


class OrderSubscription(Subscription):
    """Live view of one order: its latest snapshot and the driver's latest position."""

    def __init__(self, order_id, channel: Channel, orders, **kwargs):
        super().__init__(channel, orders, **kwargs)
        self.order_id = order_id
        self.order: Optional[dict] = None
        self.location: Optional[dict] = None
        self.restaurant: Optional[dict] = None
        self.driver: Optional[dict] = None
        self.eta: Optional[str] = None
        self.distance: Optional[str] = None

    @property
    def state(self) -> dict:
        with self._lock:
            return {
                "order": self.order,
                "location": self.location,
                "restaurant": self.restaurant,
                "driver": self.driver,
                "eta": self.eta,
                "distance": self.distance,
            }

    @property
    def is_terminal(self) -> bool:
        return self.order is not None and self.order.get("status") in TERMINAL_STATUSES

    def _event_handlers(self):
        return {"orderUpdated": self._on_order_updated, "driverLocation": self._on_driver_location}

    def _join(self):
        self.channel.join_order(self.order_id)

    def _leave(self):
        self.channel.leave_order(self.order_id)

    def resync(self):
        snapshot = self.orders.get_tracking(self.order_id)
        with self._lock:
            changed = self._apply_order(snapshot.get("order"))
            self.restaurant = snapshot.get("restaurant")
            self.driver = snapshot.get("driver")
            self.eta = snapshot.get("eta")
            self.distance = snapshot.get("distance")
            location = snapshot.get("location")
            if location is not None:
                changed = self._apply_location(location) or changed
            elif self.is_terminal:
                self.location = None
        self._notify()
        return changed

    def _apply_order(self, order: Optional[dict]) -> bool:
        if not order or not _same_id(order.get("id"), self.order_id):
            return False
        if not is_newer_snapshot(self.order, order) or order == self.order:
            return False
        self.order = order
        if self.is_terminal:
            self.location = None
        return True

    def _apply_location(self, location: dict) -> bool:
        if self.is_terminal:
            return False
        if self.location is not None:
            held = _parse_time(self.location.get("last_updated"))
            incoming = _parse_time(location.get("last_updated"))
            if held is not None and incoming is not None and incoming < held:
                return False
        if location == self.location:
            return False
        self.location = location
        return True

    def _on_order_updated(self, data):
        if self.closed or not isinstance(data, dict):
            return
        with self._lock:
            changed = self._apply_order(data.get("order"))
        if changed:
            self._notify()

    def _on_driver_location(self, data):
        if self.closed or not isinstance(data, dict) or not _same_id(data.get("order_id"), self.order_id):
            return
        with self._lock:
            changed = self._apply_location(data.get("location") or {})
        if changed:
            self._notify()


class RestaurantSubscription(Subscription):
    """Live view of every order of one restaurant, keyed by order id."""

    def __init__(self, restaurant_id, channel: Channel, orders, page_size: int = 100, **kwargs):
        super().__init__(channel, orders, **kwargs)
        self.restaurant_id = restaurant_id
        self.page_size = page_size
        self.orders_by_id: Dict[int, dict] = {}

    @property
    def state(self) -> dict:
        with self._lock:
            return {"orders": dict(self.orders_by_id)}

    def _event_handlers(self):
        return {"newOrder": self._on_order_event, "orderUpdated": self._on_order_event}

    def _join(self):
        self.channel.join_restaurant(self.restaurant_id)

    def _leave(self):
        self.channel.leave_restaurant(self.restaurant_id)

    def resync(self):
        changed = False
        page_number = 1
        while True:
            page = self.orders.list_orders(restaurant_id=self.restaurant_id, page=page_number, limit=self.page_size)
            orders = page.get("orders", [])
            with self._lock:
                for order in orders:
                    changed = self._apply_order(order) or changed
            if not orders or page_number * self.page_size >= page.get("total", 0):
                break
            page_number += 1
        self._notify()
        return changed

    def _apply_order(self, order: Optional[dict]) -> bool:
        if not order or not _same_id(order.get("restaurant_id"), self.restaurant_id):
            return False
        current = self.orders_by_id.get(order["id"])
        if not is_newer_snapshot(current, order) or order == current:
            return False
        self.orders_by_id[order["id"]] = order
        return True

    def _on_order_event(self, data):
        if self.closed or not isinstance(data, dict):
            return
        with self._lock:
            changed = self._apply_order(data.get("order"))
        if changed:
            self._notify()
