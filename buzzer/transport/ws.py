# buzzer/transport/ws.py
from __future__ import annotations

import asyncio
import uuid
import ipaddress
from typing import Iterable, Optional
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from buzzer.domain.common.events import Routed, snapshot_to_all
from buzzer.domain.room.handlers import handle_connect, handle_disconnect
from buzzer.transport.dispatcher import dispatch_message
from buzzer.transport.protocols import OutgoingEvent

router = APIRouter()
logger = structlog.get_logger()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


def origin_allowed(origin: Optional[str], allowed_origins: str, allow_lan: bool) -> bool:
    allowed = {o.strip() for o in allowed_origins.split(",") if o.strip()}
    if origin is None or "*" in allowed or origin in allowed:
        return True
    if allow_lan:
        return _is_private_ip(urlparse(origin).hostname or "")
    return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = websocket.app.state.settings
    origin = websocket.headers.get("origin")
    if origin_allowed(origin, settings.WS_ALLOWED_ORIGINS, settings.WS_ALLOW_LAN_ORIGINS):
        return True
    logger.warning("ws.origin_rejected", origin=origin)
    await websocket.close(code=1008)
    return False


async def flush(app, cid: Optional[str], to_sender: Iterable[OutgoingEvent], to_room: Iterable[Routed]) -> None:
    """
    Deliver one command's events. A connection whose send fails is treated as
    closed: it is dropped from the room and everyone still connected gets a
    fresh snapshot. Repeats until a round of sends has no failures.
    Caller holds the room lock.
    """
    wsman = app.state.wsman
    dead = await wsman.deliver(cid, to_sender, to_room)
    while dead:
        removed = [d for d in dead if handle_disconnect(app=app, cid=d)[1]]
        if not removed:
            return
        dead = await wsman.deliver(None, [], [snapshot_to_all(app.state.repo)])


async def _drop(app, cid: str) -> None:
    async with app.state.room_lock:
        to_sender, to_room = handle_disconnect(app=app, cid=cid)
        await flush(app, None, to_sender, to_room)
    logger.info("ws.disconnected", cid=cid, connections=app.state.wsman.size())


@router.websocket("/ws")
async def ws_room(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    app = websocket.app
    lock = app.state.room_lock
    cid = uuid.uuid4().hex[:10]

    async with lock:
        app.state.wsman.add(cid, websocket)
        logger.info("ws.connected", cid=cid, connections=app.state.wsman.size())
        to_sender, to_room = handle_connect(app=app, cid=cid)
        await flush(app, cid, to_sender, to_room)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None:
                logger.warning("ws.message_dropped", cid=cid, reason="binary frame")
                continue

            async with lock:
                try:
                    to_sender, to_room = dispatch_message(app=app, cid=cid, raw=text)
                except Exception:
                    # one bad command never costs the sender its connection
                    logger.exception("ws.command_failed", cid=cid, raw=text[:200])
                    continue
                await flush(app, cid, to_sender, to_room)

    except WebSocketDisconnect:
        pass

    finally:
        # runs to completion even when this handler is cancelled
        await asyncio.shield(_drop(app, cid))
