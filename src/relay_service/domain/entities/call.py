from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from relay_service.domain.value_objects.enums import CallState
from relay_service.domain.value_objects.ids import ConnectionId


@dataclass(slots=True)
class CallSession:
    caller: ConnectionId
    callee: ConnectionId
    state: CallState
    offered_at: datetime

    @property
    def pair(self) -> frozenset[ConnectionId]:
        return frozenset((self.caller, self.callee))

    def peer_of(self, connection_id: ConnectionId) -> ConnectionId:
        return self.callee if connection_id == self.caller else self.caller
