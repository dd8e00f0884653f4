"""Websocket endpoint for realtime pushes.

The handshake is accepted before the token is checked, and a refused
connection is closed right away with 4401 (no valid session) or 4403 (wrong
user kind). Closing before accept would surface to browsers as a bare HTTP
403 without the close code. The server never retries a refused connection.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from astrochat.container import Services
from astrochat.core.errors import Forbidden, StoreUnavailable, Unauthenticated
from astrochat.core.security.deps import bearer_token
from astrochat.domains.realtime.gateway import Connection, FanoutGateway
from astrochat.domains.realtime.protocol import WsInbound, WsOutbound

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["realtime"])

CLOSE_UNAUTHENTICATED = 4401
CLOSE_FORBIDDEN = 4403
CLOSE_UNAVAILABLE = 1011


async def _handle(gateway: FanoutGateway, connection: Connection, inbound: WsInbound) -> None:
    if inbound.type == "ping":
        await connection.send(WsOutbound(type="pong"))
        return
    chat_id = inbound.chat_id
    if chat_id is None:
        await connection.send(WsOutbound.error("chat_id_required", "data.chat_id is required"))
        return
    if inbound.type == "join_chat":
        await gateway.join_chat(connection, chat_id)
    else:
        await gateway.leave_chat(connection, chat_id)


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str | None = Query(default=None)):
    services: Services = websocket.app.state.services
    gateway = services.gateway

    await websocket.accept()
    try:
        connection = await gateway.connect(websocket, token or bearer_token(websocket.headers))
    except Unauthenticated as exc:
        logger.info("realtime_refused", code=exc.code)
        await websocket.close(code=CLOSE_UNAUTHENTICATED)
        return
    except Forbidden as exc:
        logger.info("realtime_refused", code=exc.code)
        await websocket.close(code=CLOSE_FORBIDDEN)
        return
    except StoreUnavailable:
        await websocket.close(code=CLOSE_UNAVAILABLE)
        return

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                await connection.send(WsOutbound.error("invalid_message", "Only text frames are accepted"))
                continue
            try:
                inbound = WsInbound.model_validate_json(raw)
            except ValidationError:
                await connection.send(WsOutbound.error("invalid_message", "Unsupported message"))
                continue
            await _handle(gateway, connection, inbound)
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.disconnect(connection)


__all__ = ["router"]
