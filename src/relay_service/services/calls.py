"""Call signaling coordinator.

Tracks which pairs of connections are negotiating (``offering``) or holding
(``active``) a voice call. Offer/answer/candidate payloads are never
inspected, only relayed. Each connection takes part in at most one call.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from relay_service.application.dto.directives import Directive
from relay_service.application.ports.clock import Clock, SystemClock
from relay_service.domain.entities.call import CallSession
from relay_service.domain.value_objects.enums import CallEndReason, CallState, OutboundEvent
from relay_service.domain.value_objects.ids import ConnectionId
from relay_service.services.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

DEFAULT_OFFER_TIMEOUT_SECONDS = 30.0


def _ended(to: ConnectionId, peer: ConnectionId, reason: CallEndReason) -> Directive:
    return Directive.unicast(
        to, OutboundEvent.CALL_ENDED, {"peer": peer, "reason": reason.value},
    )


class CallCoordinator:
    def __init__(
        self,
        registry: ConnectionRegistry,
        clock: Clock | None = None,
        offer_timeout: float = DEFAULT_OFFER_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._clock = clock or SystemClock()
        self._offer_timeout = timedelta(seconds=offer_timeout)
        self._calls: dict[frozenset[ConnectionId], CallSession] = {}
        self._by_connection: dict[ConnectionId, CallSession] = {}

    def call_for(self, connection_id: ConnectionId) -> CallSession | None:
        return self._by_connection.get(connection_id)

    def calls(self) -> list[CallSession]:
        return list(self._calls.values())

    def __len__(self) -> int:
        return len(self._calls)

    def offer(
        self,
        caller: ConnectionId,
        callee: ConnectionId,
        caller_name: str,
        offer: Any,
    ) -> list[Directive]:
        if callee == caller or callee not in self._registry:
            logger.info("Call offer %s -> %s rejected: unavailable", caller, callee)
            return [_ended(caller, callee, CallEndReason.UNAVAILABLE)]

        pair = frozenset((caller, callee))
        existing = self._by_connection.get(caller)
        if existing is None or existing.pair != pair:
            if existing is not None or callee in self._by_connection:
                logger.info("Call offer %s -> %s rejected: busy", caller, callee)
                return [_ended(caller, callee, CallEndReason.BUSY)]
            call = CallSession(
                caller=caller,
                callee=callee,
                state=CallState.OFFERING,
                offered_at=self._clock.now(),
            )
            self._calls[pair] = call
            self._by_connection[caller] = call
            self._by_connection[callee] = call
            logger.info("Call offer %s -> %s", caller, callee)

        return [
            Directive.unicast(
                callee,
                OutboundEvent.CALL_OFFER,
                {"from": caller, "from_name": caller_name, "offer": offer},
            )
        ]

    def answer(self, sender: ConnectionId, to: ConnectionId, answer: Any) -> list[Directive]:
        call = self._by_connection.get(sender)
        if call is None or call.pair != frozenset((sender, to)):
            logger.debug("Dropping answer %s -> %s: no call", sender, to)
            return []
        if call.state == CallState.OFFERING:
            if call.callee != sender:
                logger.debug("Dropping answer %s -> %s: sender is the caller", sender, to)
                return []
            call.state = CallState.ACTIVE
            logger.info("Call %s <-> %s active", call.caller, call.callee)
        if to not in self._registry:
            return []
        return [
            Directive.unicast(to, OutboundEvent.CALL_ANSWER, {"from": sender, "answer": answer})
        ]

    def ice_candidate(
        self,
        sender: ConnectionId,
        to: ConnectionId,
        candidate: Any,
    ) -> list[Directive]:
        # Candidates may race ahead of the offer, so no call state is required.
        if to not in self._registry:
            return []
        return [
            Directive.unicast(
                to, OutboundEvent.CALL_ICE_CANDIDATE, {"from": sender, "candidate": candidate},
            )
        ]

    def end(self, sender: ConnectionId, to: ConnectionId) -> list[Directive]:
        call = self._by_connection.get(sender)
        if call is not None and call.pair == frozenset((sender, to)):
            self._clear(call)
            logger.info("Call %s <-> %s ended by %s", call.caller, call.callee, sender)
        if to not in self._registry:
            return []
        return [_ended(to, sender, CallEndReason.ENDED)]

    def disconnect(self, connection_id: ConnectionId) -> list[Directive]:
        call = self._by_connection.get(connection_id)
        if call is None:
            return []
        self._clear(call)
        peer = call.peer_of(connection_id)
        logger.info("Call %s <-> %s dropped: %s disconnected", call.caller, call.callee, connection_id)
        if peer not in self._registry:
            return []
        return [_ended(peer, connection_id, CallEndReason.DISCONNECTED)]

    def expire(self, now: datetime | None = None) -> list[Directive]:
        """Tear down offers that went unanswered for longer than the timeout."""
        now = now or self._clock.now()
        directives: list[Directive] = []
        for call in self.calls():
            if call.state != CallState.OFFERING or now - call.offered_at < self._offer_timeout:
                continue
            self._clear(call)
            logger.info("Call offer %s -> %s timed out", call.caller, call.callee)
            for party in (call.caller, call.callee):
                if party in self._registry:
                    directives.append(_ended(party, call.peer_of(party), CallEndReason.TIMEOUT))
        return directives

    def _clear(self, call: CallSession) -> None:
        self._calls.pop(call.pair, None)
        for party in (call.caller, call.callee):
            if self._by_connection.get(party) is call:
                del self._by_connection[party]
