"""Relay hub: the single event-processing stream of the server process."""
from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket
from pydantic import ValidationError as PydanticValidationError

from relay_service.application.dto.directives import Directive
from relay_service.application.exceptions import InvalidPayloadError, UnknownEventError
from relay_service.application.ports.clock import Clock
from relay_service.config import Settings
from relay_service.domain.value_objects.enums import OutboundEvent
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.infrastructure.ws.manager import ConnectionManager
from relay_service.infrastructure.ws.protocol import WsInbound
from relay_service.services.calls import CallCoordinator
from relay_service.services.presence import PresenceBroadcaster
from relay_service.services.registry import ConnectionRegistry
from relay_service.services.router import MessageRouter

logger = logging.getLogger(__name__)


class RelayHub:
    """Runs each transport event to completion under one lock.

    The lock spans routing and delivery, so a registry mutation and every
    broadcast it causes are queued, in order, before the next event is
    looked at. Delivery only enqueues; socket writes happen in the
    manager's per-connection writer tasks, outside the lock.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        router: MessageRouter,
        manager: ConnectionManager,
    ) -> None:
        self.registry = registry
        self.router = router
        self.manager = manager
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock | None = None) -> RelayHub:
        registry = ConnectionRegistry()
        calls = CallCoordinator(
            registry, clock, offer_timeout=settings.CALL_OFFER_TIMEOUT_SECONDS,
        )
        router = MessageRouter(
            registry,
            PresenceBroadcaster(registry),
            calls,
            clock,
            max_display_name_length=settings.MAX_DISPLAY_NAME_LENGTH,
            dm_delivery_status=settings.DM_DELIVERY_STATUS,
        )
        return cls(registry, router, ConnectionManager(queue_size=settings.WS_SEND_QUEUE_SIZE))

    async def connect(self, ws: WebSocket, connection_id: ConnectionId | None = None) -> ConnectionId:
        async with self._lock:
            connection_id = await self.manager.connect(ws, connection_id)
            self.manager.deliver(self.router.on_connect(connection_id))
        return connection_id

    async def receive(self, connection_id: ConnectionId, raw: str) -> None:
        async with self._lock:
            try:
                msg = WsInbound.model_validate_json(raw)
            except PydanticValidationError:
                self.manager.send(connection_id, OutboundEvent.ERROR, {"code": "invalid_payload"})
                return

            try:
                directives = self.router.route(connection_id, msg.type, msg.data)
            except UnknownEventError as exc:
                directives = [
                    Directive.unicast(
                        connection_id,
                        OutboundEvent.ERROR,
                        {"code": "unknown_type", "type": exc.event_type},
                    )
                ]
            except InvalidPayloadError as exc:
                logger.debug("Invalid %s payload from %s: %s", msg.type, connection_id, exc.detail)
                directives = [
                    Directive.unicast(
                        connection_id,
                        OutboundEvent.ERROR,
                        {"code": "invalid_payload", "type": msg.type, "detail": exc.detail},
                    )
                ]
            self.manager.deliver(directives)

    async def disconnect(self, connection_id: ConnectionId) -> None:
        async with self._lock:
            self.manager.disconnect(connection_id)
            self.manager.deliver(self.router.on_disconnect(connection_id))

    async def expire_offers(self) -> None:
        async with self._lock:
            self.manager.deliver(self.router.expire_offers())
