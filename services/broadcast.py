"""Room-scoped fan-out over WebSocket connections.

A connection only receives events for rooms it currently belongs to. Nothing
is kept for a connection once it disconnects and missed events are never
replayed; clients re-join and re-fetch over REST after reconnecting.
"""
import json
import logging
from typing import Any, Dict, Iterable, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def order_room(order_id) -> str:
    return f"order-{order_id}"


def restaurant_room(restaurant_id) -> str:
    return f"restaurant-{restaurant_id}"


def user_room(user_id) -> str:
    return f"user-{user_id}"


class RoomManager:
    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        self._rooms: Dict[str, Set[WebSocket]] = {}
        self._memberships: Dict[WebSocket, Set[str]] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)
        self._memberships[websocket] = set()

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)
        for room in self._memberships.pop(websocket, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self._rooms[room]

    def join(self, websocket: WebSocket, room: str):
        if websocket not in self.active_connections:
            return
        self._rooms.setdefault(room, set()).add(websocket)
        self._memberships[websocket].add(room)
        logger.debug("Socket %s joined %s", id(websocket), room)

    def leave(self, websocket: WebSocket, room: str):
        members = self._rooms.get(room)
        if members is not None:
            members.discard(websocket)
            if not members:
                del self._rooms[room]
        if websocket in self._memberships:
            self._memberships[websocket].discard(room)
        logger.debug("Socket %s left %s", id(websocket), room)

    def rooms_of(self, websocket: WebSocket) -> Set[str]:
        return set(self._memberships.get(websocket, ()))

    def members(self, room: str) -> Set[WebSocket]:
        return set(self._rooms.get(room, ()))

    async def emit(self, room: str, event: str, data: Any):
        await self.emit_many([room], event, data)

    async def emit_many(self, rooms: Iterable[str], event: str, data: Any):
        """Send one event to every member of ``rooms``; each socket gets it at most once."""
        targets = set()
        for room in rooms:
            targets |= self.members(room)
        if not targets:
            return

        message = json.dumps({"event": event, "data": data}, default=str)
        for websocket in list(targets):
            try:
                await websocket.send_text(message)
            except Exception as e:
                logger.warning("Dropping socket %s after failed send of %s: %s", id(websocket), event, e)
                self.disconnect(websocket)


room_manager = RoomManager()
