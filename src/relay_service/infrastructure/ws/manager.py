"""In-process WebSocket connection manager."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable

from fastapi import WebSocket

from relay_service.application.dto.directives import Directive
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256


@dataclass(slots=True)
class _Outbox:
    ws: WebSocket
    queue: asyncio.Queue[str]
    writer: asyncio.Task[None] | None = None


class ConnectionManager:
    """Owns the live sockets and executes routing directives against them.

    Each connection has a bounded outbound queue drained by its own writer
    task, so delivering only enqueues and a socket that stops reading
    holds up nobody but itself. Frames for a full queue are dropped.
    Send failures are logged and dropped; the socket is only forgotten
    when its own read loop ends.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._connections: dict[ConnectionId, _Outbox] = {}

    async def connect(self, ws: WebSocket, connection_id: ConnectionId | None = None) -> ConnectionId:
        await ws.accept()
        connection_id = connection_id or ConnectionId(uuid.uuid4().hex)
        outbox = _Outbox(ws=ws, queue=asyncio.Queue(maxsize=self._queue_size))
        outbox.writer = asyncio.create_task(
            self._write_loop(connection_id, outbox), name=f"ws-writer-{connection_id}",
        )
        self._connections[connection_id] = outbox
        logger.info("WS connected: %s (total=%d)", connection_id, len(self._connections))
        return connection_id

    def disconnect(self, connection_id: ConnectionId) -> bool:
        outbox = self._connections.pop(connection_id, None)
        if outbox is None:
            return False
        if outbox.writer is not None:
            outbox.writer.cancel()
        logger.info("WS disconnected: %s (total=%d)", connection_id, len(self._connections))
        return True

    async def close(self) -> None:
        """Stop every writer task; used on shutdown."""
        writers = [o.writer for o in self._connections.values() if o.writer is not None]
        self._connections.clear()
        for writer in writers:
            writer.cancel()
        await asyncio.gather(*writers, return_exceptions=True)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def send(
        self,
        connection_id: ConnectionId,
        event_type: str,
        data: dict[str, Any],
    ) -> bool:
        """Queue one event for one connection. Returns False if it was not queued."""
        outbox = self._connections.get(connection_id)
        if outbox is None:
            return False
        raw = WsOutbound(type=str(event_type), data=data).model_dump_json()
        return self._enqueue(connection_id, outbox, raw)

    def deliver(self, directives: Iterable[Directive]) -> None:
        for directive in directives:
            raw = WsOutbound(type=directive.event, data=directive.data).model_dump_json()
            if directive.to is not None:
                outbox = self._connections.get(directive.to)
                if outbox is None:
                    logger.debug("No socket for %s, dropping %s", directive.to, directive.event)
                    continue
                self._enqueue(directive.to, outbox, raw)
                continue
            for connection_id, outbox in self._connections.items():
                if directive.reaches(connection_id):
                    self._enqueue(connection_id, outbox, raw)

    async def drain(self, *connection_ids: ConnectionId) -> None:
        """Wait until the given connections (default: all) have flushed their queues."""
        targets = connection_ids or tuple(self._connections)
        for connection_id in targets:
            outbox = self._connections.get(connection_id)
            if outbox is not None:
                await outbox.queue.join()

    def _enqueue(self, connection_id: ConnectionId, outbox: _Outbox, raw: str) -> bool:
        try:
            outbox.queue.put_nowait(raw)
        except asyncio.QueueFull:
            logger.warning("Outbound queue full for %s, dropping frame", connection_id)
            return False
        return True

    async def _write_loop(self, connection_id: ConnectionId, outbox: _Outbox) -> None:
        while True:
            raw = await outbox.queue.get()
            try:
                await outbox.ws.send_text(raw)
            except Exception:
                logger.debug("WS send to %s failed", connection_id, exc_info=True)
            finally:
                outbox.queue.task_done()
