"""Client side of the live tracking channel.

A channel remembers the rooms it has been asked to hold and re-issues every
join after each (re)connect, since the server forgets a connection's rooms as
soon as it drops. Handlers registered with ``on`` receive the event payload;
the pseudo events ``connect`` and ``disconnect`` fire on transport changes.
"""
import json
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

import websocket

logger = logging.getLogger(__name__)

ROOM_EVENTS = {
    "order": ("joinOrder", "leaveOrder"),
    "restaurant": ("joinRestaurant", "leaveRestaurant"),
}


def room_name(kind: str, room_id) -> str:
    return f"{kind}-{room_id}"


class Channel:
    def __init__(self):
        self.connected = False
        self._handlers: Dict[str, List[Callable]] = defaultdict(list)
        # room -> number of holders; the room is left once nobody holds it
        self._holds: Dict[str, int] = {}
        self._room_ids: Dict[str, tuple] = {}
        self._lock = threading.RLock()

    # Transport hooks implemented by subclasses

    def connect(self):
        raise NotImplementedError

    def disconnect(self):
        raise NotImplementedError

    def _send(self, event: str, data: Any):
        raise NotImplementedError

    # Handlers

    def on(self, event: str, handler: Callable):
        with self._lock:
            self._handlers[event].append(handler)
        return handler

    def off(self, event: str, handler: Callable):
        with self._lock:
            if handler in self._handlers.get(event, []):
                self._handlers[event].remove(handler)

    def _dispatch(self, event: str, data: Any = None):
        with self._lock:
            handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            try:
                handler(data)
            except Exception:
                logger.exception("Handler for %s failed", event)

    # Rooms

    @property
    def rooms(self):
        with self._lock:
            return set(self._holds)

    def _join(self, kind: str, room_id):
        room = room_name(kind, room_id)
        with self._lock:
            first = room not in self._holds
            self._holds[room] = self._holds.get(room, 0) + 1
            self._room_ids[room] = (kind, room_id)
            send = first and self.connected
        if send:
            self._send(ROOM_EVENTS[kind][0], room_id)

    def _leave(self, kind: str, room_id):
        room = room_name(kind, room_id)
        with self._lock:
            if room not in self._holds:
                return
            self._holds[room] -= 1
            last = self._holds[room] == 0
            if last:
                del self._holds[room]
                del self._room_ids[room]
            send = last and self.connected
        if send:
            self._send(ROOM_EVENTS[kind][1], room_id)

    def join_order(self, order_id):
        self._join("order", order_id)

    def leave_order(self, order_id):
        self._leave("order", order_id)

    def join_restaurant(self, restaurant_id):
        self._join("restaurant", restaurant_id)

    def leave_restaurant(self, restaurant_id):
        self._leave("restaurant", restaurant_id)

    # Transport state changes

    def _handle_open(self):
        with self._lock:
            self.connected = True
            rooms = list(self._room_ids.values())
        for kind, room_id in rooms:
            self._send(ROOM_EVENTS[kind][0], room_id)
        self._dispatch("connect")

    def _handle_close(self):
        with self._lock:
            if not self.connected:
                return
            self.connected = False
        self._dispatch("disconnect")


class MemoryChannel(Channel):
    """In-process channel. Tests and tools push synthetic server events with ``deliver``."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def connect(self):
        self._handle_open()

    def disconnect(self):
        self._handle_close()

    def _send(self, event: str, data: Any):
        self.sent.append((event, data))

    def deliver(self, event: str, data: Any, room: str = None) -> bool:
        """Dispatch a server event. Returns False when it would not reach this client."""
        if not self.connected:
            return False
        if room is not None and room not in self.rooms:
            return False
        self._dispatch(event, data)
        return True

    def drop(self):
        self._handle_close()

    def restore(self):
        self._handle_open()


class WebSocketChannel(Channel):
    """Channel over the server's ``/ws`` endpoint, reconnecting automatically."""

    def __init__(self, url: str, reconnect_delay: int = 5, headers: dict = None):
        super().__init__()
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.headers = headers
        self._app = None
        self._thread = None

    def connect(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._app = websocket.WebSocketApp(
            self.url,
            header=self.headers,
            on_open=lambda ws: self._handle_open(),
            on_reconnect=lambda ws: self._handle_open(),
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=lambda ws, status_code, message: self._handle_close(),
        )
        self._thread = threading.Thread(
            target=self._app.run_forever,
            kwargs={"reconnect": self.reconnect_delay},
            name="tracking-channel",
            daemon=True,
        )
        self._thread.start()

    def disconnect(self):
        if self._app is not None:
            self._app.close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._thread = None
        self._handle_close()

    def _send(self, event: str, data: Any):
        try:
            self._app.send(json.dumps({"event": event, "data": data}))
        except websocket.WebSocketException as e:
            # Joins are replayed on the next open, so a lost send only delays them
            logger.warning("Could not send %s: %s", event, e)
            self._handle_close()

    def _on_message(self, ws, message: str):
        try:
            payload = json.loads(message)
        except ValueError:
            logger.warning("Ignoring malformed channel frame")
            return
        self._dispatch(payload.get("event"), payload.get("data"))

    def _on_error(self, ws, error):
        logger.warning("Tracking channel error: %s", error)
        self._handle_close()
