from __future__ import annotations

import logging

from relay_service.domain.entities.session import Session
from relay_service.domain.value_objects.avatar import Avatar
from relay_service.domain.value_objects.ids import ConnectionId

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Live connection -> Session map. Absence from the map is the offline state.

    The registry only stores. Presence notifications are issued by the
    router after each mutation, inside the same event.
    """

    def __init__(self) -> None:
        self._sessions: dict[ConnectionId, Session] = {}

    def register(
        self,
        connection_id: ConnectionId,
        device_key: str,
        display_name: str,
    ) -> Session:
        session = Session(
            connection_id=connection_id,
            device_key=device_key,
            display_name=display_name,
            avatar=Avatar.for_name(display_name),
        )
        if connection_id in self._sessions:
            logger.debug("Overwriting session for %s", connection_id)
        self._sessions[connection_id] = session
        return session

    def lookup(self, connection_id: ConnectionId) -> Session | None:
        return self._sessions.get(connection_id)

    def remove(self, connection_id: ConnectionId) -> Session | None:
        """Drop the session; unknown ids are a no-op returning None."""
        return self._sessions.pop(connection_id, None)

    def snapshot(self) -> list[Session]:
        return list(self._sessions.values())

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
