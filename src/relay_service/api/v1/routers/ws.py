from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from relay_service.api.deps import HubDep
from relay_service.api.middleware.correlation_id import correlation_id_ctx
from relay_service.config import settings
from relay_service.domain.value_objects.enums import OutboundEvent
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.infrastructure.ws.hub import RelayHub
from relay_service.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def ws_relay(websocket: WebSocket, hub: HubDep) -> None:
    connection_id = ConnectionId(uuid.uuid4().hex)
    token = correlation_id_ctx.set(connection_id)
    try:
        await hub.connect(websocket, connection_id)
        heartbeat_task = asyncio.create_task(
            _heartbeat(hub.manager, connection_id), name=f"ws-heartbeat-{connection_id}",
        )
        try:
            await _read_loop(websocket, hub, connection_id)
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("WS error for %s", connection_id)
        finally:
            heartbeat_task.cancel()
            await hub.disconnect(connection_id)
    finally:
        correlation_id_ctx.reset(token)


async def _heartbeat(manager: ConnectionManager, connection_id: ConnectionId) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while connection_id in manager:
            await asyncio.sleep(interval)
            manager.send(connection_id, OutboundEvent.PONG, {})
    except asyncio.CancelledError:
        pass


async def _read_loop(ws: WebSocket, hub: RelayHub, connection_id: ConnectionId) -> None:
    while True:
        raw = await ws.receive_text()
        await hub.receive(connection_id, raw)
