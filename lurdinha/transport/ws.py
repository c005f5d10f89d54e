# lurdinha/transport/ws.py
from __future__ import annotations

import ipaddress
import logging
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from lurdinha.transport.dispatcher import dispatch_message
from lurdinha.transport.protocols import OutError, OutHello
from lurdinha.transport.session import ClientSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = websocket.app.state.settings
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is None or origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        host = urlparse(origin).hostname or ""
        if _is_private_ip(host):
            return True
    await websocket.close(code=1008)
    return False


@router.websocket("/ws-create")
async def ws_create(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()
    session = ClientSession(websocket.app.state.repo, websocket.send_json)

    try:
        raw = await websocket.receive_json()
        if not isinstance(raw, dict) or raw.get("type") != "create_room":
            await session.send(OutError(code="ONLY_CREATE_ROOM", message="ws-create only accepts create_room"))
            return

        for e in await dispatch_message(app=websocket.app, session=session, raw=raw):
            await session.send_raw(e)
    except WebSocketDisconnect:
        return
    finally:
        await websocket.close()


@router.websocket("/ws/{room_code}")
async def ws_room(websocket: WebSocket, room_code: str):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    session = ClientSession(websocket.app.state.repo, websocket.send_json, room_code=room_code)
    await session.send(OutHello(room_code=room_code))

    try:
        while True:
            raw = await websocket.receive_json()
            for e in await dispatch_message(app=websocket.app, session=session, raw=raw):
                await session.send_raw(e)
    except WebSocketDisconnect:
        logger.debug("client %s left room %s", getattr(session.actor, "uid", None), session.room_code)
    finally:
        await session.unsubscribe()
