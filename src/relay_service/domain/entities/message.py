from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from relay_service.domain.value_objects.avatar import Avatar
from relay_service.domain.value_objects.ids import MessageId


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: MessageId
    text: str
    sender_name: str
    sender_device_key: str
    avatar: Avatar
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "text": self.text,
            "sender_name": self.sender_name,
            "sender_device_key": self.sender_device_key,
            "avatar": self.avatar.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }
