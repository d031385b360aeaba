from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from relay_service.domain.value_objects.ids import ConnectionId


@dataclass(frozen=True, slots=True)
class Directive:
    """One outbound event plus the connections it is meant for.

    ``to`` set means unicast. Otherwise the event goes to every live
    connection except ``exclude``.
    """

    event: str
    data: dict[str, Any] = field(default_factory=dict)
    to: ConnectionId | None = None
    exclude: ConnectionId | None = None

    @classmethod
    def unicast(cls, to: ConnectionId, event: str, data: dict[str, Any] | None = None) -> Directive:
        return cls(event=str(event), data=data or {}, to=to)

    @classmethod
    def broadcast(
        cls,
        event: str,
        data: dict[str, Any] | None = None,
        *,
        exclude: ConnectionId | None = None,
    ) -> Directive:
        return cls(event=str(event), data=data or {}, exclude=exclude)

    @property
    def is_broadcast(self) -> bool:
        return self.to is None

    def reaches(self, connection_id: ConnectionId) -> bool:
        if self.to is not None:
            return self.to == connection_id
        return connection_id != self.exclude
