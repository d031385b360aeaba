from __future__ import annotations

from typing import Any

from relay_service.application.dto.directives import Directive
from relay_service.domain.value_objects.enums import OutboundEvent
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.services.registry import ConnectionRegistry


class PresenceBroadcaster:
    """Turns the registry snapshot into ``presence.users`` directives.

    Every call produces a full snapshot; clients replace their list on
    each one, so back-to-back broadcasts are harmless.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def payload(self) -> dict[str, Any]:
        return {"users": [s.to_dict() for s in self._registry.snapshot()]}

    def broadcast_presence(self) -> Directive:
        return Directive.broadcast(OutboundEvent.PRESENCE_USERS, self.payload())

    def presence_for(self, connection_id: ConnectionId) -> Directive:
        return Directive.unicast(connection_id, OutboundEvent.PRESENCE_USERS, self.payload())
