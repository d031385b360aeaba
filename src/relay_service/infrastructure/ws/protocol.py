"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join | message.send | dm.send | typing | call.* | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # presence.users | message.created | dm.created | user.typing | call.* | error | pong
    data: dict[str, Any] = {}
