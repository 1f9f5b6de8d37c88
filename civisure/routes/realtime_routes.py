"""
CiviSure - Real-time Alert Channel

Admins connected to /ws receive new-sos and sos-updated events as they
happen. The protocol is JSON both ways:

    client -> {"event": "join-admin"}
    server -> {"event": "joined", "room": "admin"}
    server -> {"event": "new-sos", "data": {...}}
    server -> {"event": "error", "message": "..."}
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import async_sessionmaker

from civisure.database import get_session_factory
from civisure.auth import resolve_session, SESSION_COOKIE_NAME
from civisure.realtime import AlertBroadcaster, get_broadcaster, ADMIN_ROOM

logger = logging.getLogger(__name__)

router = APIRouter()

JOIN_ADMIN_EVENT = "join-admin"


async def forward_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Drain a subscriber queue onto the socket until the client goes away."""
    while True:
        message = await queue.get()
        try:
            await websocket.send_json(jsonable_encoder(message))
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("Observer went away while an event was being sent")
            return


async def send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "message": message})


@router.websocket("/ws")
async def alert_channel(
    websocket: WebSocket,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    publisher: AlertBroadcaster = Depends(get_broadcaster),
):
    """
    Admin observer connection.

    Joining requires the admin's session cookie on the upgrade request.
    Until a successful join the connection receives nothing but replies.
    The cookie is checked in its own session, so an open socket holds no
    database connection.
    """
    await websocket.accept()
    queue = None
    sender = None

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await send_error(websocket, "Messages must be JSON")
                continue

            if not isinstance(message, dict) or message.get("event") != JOIN_ADMIN_EVENT:
                await send_error(websocket, "Unknown event")
                continue

            if queue is None:
                async with session_factory() as db:
                    auth = await resolve_session(db, websocket.cookies.get(SESSION_COOKIE_NAME))
                if not auth or not auth.is_admin:
                    await send_error(websocket, "Admin access required")
                    continue

                await websocket.send_json({"event": "joined", "room": ADMIN_ROOM})
                queue = publisher.subscribe()
                sender = asyncio.create_task(forward_events(websocket, queue))
                logger.info(f"Admin {auth.user_id} joined the alert channel")
            else:
                await websocket.send_json({"event": "joined", "room": ADMIN_ROOM})
    except WebSocketDisconnect:
        logger.debug("Alert channel closed by client")
    finally:
        if queue is not None:
            publisher.unsubscribe(queue)
        if sender is not None:
            sender.cancel()
