"""Read-only HTTP view of who is online."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from relay_service.api.deps import HubDep
from relay_service.application.exceptions import NotFoundError
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.services.presence import PresenceBroadcaster

router = APIRouter(prefix="/api/v1/presence", tags=["presence"])


@router.get("")
async def list_presence(hub: HubDep) -> dict[str, Any]:
    return PresenceBroadcaster(hub.registry).payload()


@router.get("/{connection_id}")
async def get_presence(connection_id: str, hub: HubDep) -> dict[str, Any]:
    session = hub.registry.lookup(ConnectionId(connection_id))
    if session is None:
        raise NotFoundError(f"connection {connection_id} is not online")
    return session.to_dict()
