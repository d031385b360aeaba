"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import pytest

from relay_service.application.dto.directives import Directive
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.services.calls import CallCoordinator
from relay_service.services.presence import PresenceBroadcaster
from relay_service.services.registry import ConnectionRegistry
from relay_service.services.router import MessageRouter


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass
class FakeWebSocket:
    """Records frames sent by the manager.

    ``fail`` makes every send raise; ``stalled`` makes every send hang
    like a peer that stopped reading.
    """

    fail: bool = False
    stalled: bool = False
    accepted: bool = False
    sent: list[dict[str, Any]] = field(default_factory=list)

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, raw: str) -> None:
        if self.stalled:
            await asyncio.get_running_loop().create_future()
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(json.loads(raw))

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [frame["data"] for frame in self.sent if frame["type"] == event_type]


@dataclass
class Relay:
    registry: ConnectionRegistry
    presence: PresenceBroadcaster
    calls: CallCoordinator
    router: MessageRouter
    clock: FakeClock


def make_relay(
    *,
    clock: FakeClock | None = None,
    offer_timeout: float = 30.0,
    dm_delivery_status: bool = False,
    max_display_name_length: int = 32,
) -> Relay:
    clock = clock or FakeClock()
    registry = ConnectionRegistry()
    presence = PresenceBroadcaster(registry)
    calls = CallCoordinator(registry, clock, offer_timeout=offer_timeout)
    router = MessageRouter(
        registry,
        presence,
        calls,
        clock,
        max_display_name_length=max_display_name_length,
        dm_delivery_status=dm_delivery_status,
    )
    return Relay(registry, presence, calls, router, clock)


def join(relay: Relay, connection_id: str, device_key: str, name: str) -> list[Directive]:
    return relay.router.route(
        ConnectionId(connection_id), "join", {"device_key": device_key, "display_name": name},
    )


def recipients(directive: Directive, connected: Iterable[str]) -> list[str]:
    return [c for c in connected if directive.reaches(ConnectionId(c))]


def of_event(directives: Iterable[Directive], event: str) -> list[Directive]:
    return [d for d in directives if d.event == event]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def relay(clock) -> Relay:
    return make_relay(clock=clock)


@pytest.fixture
def alice_and_bob(relay) -> Relay:
    join(relay, "A", "k1", "Alice")
    join(relay, "B", "k2", "Bob")
    return relay
