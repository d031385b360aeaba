from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from relay_service.domain.value_objects.avatar import Avatar
from relay_service.domain.value_objects.ids import ConnectionId


@dataclass(frozen=True, slots=True)
class Session:
    """Identity and presence data bound to one live connection."""

    connection_id: ConnectionId
    device_key: str
    display_name: str
    avatar: Avatar
    online: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "device_key": self.device_key,
            "display_name": self.display_name,
            "avatar": self.avatar.to_dict(),
            "online": self.online,
        }
