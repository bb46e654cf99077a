"""WebSocket endpoint of the live tracking channel.

Frames are JSON text: ``{"event": <name>, "data": <payload>}``. Clients send
joinOrder / leaveOrder / joinRestaurant / leaveRestaurant / join / ping and
receive driverLocation, orderUpdated and newOrder for the rooms they hold.
"""
import json
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services.broadcast import room_manager, order_room, restaurant_room, user_room

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

JOIN_EVENTS = {
    "joinOrder": order_room,
    "joinRestaurant": restaurant_room,
    "join": user_room,
}

LEAVE_EVENTS = {
    "leaveOrder": order_room,
    "leaveRestaurant": restaurant_room,
    "leave": user_room,
}


async def _send(websocket: WebSocket, event: str, data):
    await websocket.send_text(json.dumps({"event": event, "data": data}))


async def handle_message(websocket: WebSocket, raw: str, manager=room_manager):
    try:
        message = json.loads(raw)
        event = message["event"]
        data = message.get("data")
    except (ValueError, KeyError, TypeError):
        await _send(websocket, "error", {"message": "Malformed message"})
        return

    if event in JOIN_EVENTS or event in LEAVE_EVENTS:
        if data is None or isinstance(data, (dict, list)) or str(data) == "":
            await _send(websocket, "error", {"message": f"{event} requires an id"})
            return
        if event in JOIN_EVENTS:
            room = JOIN_EVENTS[event](data)
            manager.join(websocket, room)
            await _send(websocket, "joined", {"room": room})
        else:
            room = LEAVE_EVENTS[event](data)
            manager.leave(websocket, room)
            await _send(websocket, "left", {"room": room})
    elif event == "ping":
        await _send(websocket, "pong", data)
    else:
        await _send(websocket, "error", {"message": f"Unknown event {event}"})


@router.websocket("/ws")
async def websocket_channel(websocket: WebSocket):
    await room_manager.connect(websocket)
    logger.info("Tracking client connected: %s", id(websocket))
    try:
        while True:
            raw = await websocket.receive_text()
            await handle_message(websocket, raw)
    except WebSocketDisconnect:
        pass
    finally:
        room_manager.disconnect(websocket)
        logger.info("Tracking client disconnected: %s", id(websocket))
