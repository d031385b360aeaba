from __future__ import annotations

from typing import NewType
from uuid import UUID

ConnectionId = NewType("ConnectionId", str)
MessageId = NewType("MessageId", UUID)
