"""Inbound event classification and routing.

Every handler returns the list of directives the event produces; nothing
here touches a socket. The hub feeds the result to the connection manager.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from relay_service.application.dto.directives import Directive
from relay_service.application.dto.events import (
    CallAnswerIn,
    CallEndIn,
    CallOfferIn,
    DirectMessageIn,
    IceCandidateIn,
    JoinIn,
    MessageIn,
    TypingIn,
)
from relay_service.application.exceptions import InvalidPayloadError, UnknownEventError
from relay_service.application.ports.clock import Clock, SystemClock
from relay_service.domain.entities.message import ChatMessage
from relay_service.domain.entities.session import Session
from relay_service.domain.value_objects.enums import InboundEvent, OutboundEvent
from relay_service.domain.value_objects.ids import ConnectionId, MessageId
from relay_service.services.calls import CallCoordinator
from relay_service.services.presence import PresenceBroadcaster
from relay_service.services.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[ConnectionId, Any], list[Directive]]


class MessageRouter:
    def __init__(
        self,
        registry: ConnectionRegistry,
        presence: PresenceBroadcaster,
        calls: CallCoordinator,
        clock: Clock | None = None,
        *,
        max_display_name_length: int = 32,
        dm_delivery_status: bool = False,
    ) -> None:
        self._registry = registry
        self._presence = presence
        self._calls = calls
        self._clock = clock or SystemClock()
        self._max_display_name_length = max_display_name_length
        self._dm_delivery_status = dm_delivery_status
        self._typing: set[ConnectionId] = set()
        self._handlers: dict[InboundEvent, tuple[type[BaseModel], Handler]] = {
            InboundEvent.JOIN: (JoinIn, self.handle_join),
            InboundEvent.MESSAGE_SEND: (MessageIn, self.handle_message),
            InboundEvent.DM_SEND: (DirectMessageIn, self.handle_direct_message),
            InboundEvent.TYPING: (TypingIn, self.handle_typing),
            InboundEvent.CALL_OFFER: (CallOfferIn, self.handle_call_offer),
            InboundEvent.CALL_ANSWER: (CallAnswerIn, self.handle_call_answer),
            InboundEvent.CALL_ICE_CANDIDATE: (IceCandidateIn, self.handle_ice_candidate),
            InboundEvent.CALL_END: (CallEndIn, self.handle_call_end),
        }

    @property
    def typing(self) -> frozenset[ConnectionId]:
        return frozenset(self._typing)

    def route(
        self,
        connection_id: ConnectionId,
        event_type: str,
        data: dict[str, Any],
    ) -> list[Directive]:
        """Classify one inbound event and dispatch it to its handler.

        Raises UnknownEventError for an unrecognised type and
        InvalidPayloadError when ``data`` does not fit the event's model.
        """
        try:
            event = InboundEvent(event_type)
        except ValueError:
            raise UnknownEventError(event_type) from None

        if event == InboundEvent.PING:
            return [Directive.unicast(connection_id, OutboundEvent.PONG)]

        model, handler = self._handlers[event]
        try:
            payload = model.model_validate(data)
        except PydanticValidationError as exc:
            raise InvalidPayloadError(str(exc)) from exc
        return handler(connection_id, payload)

    # -- lifecycle ---------------------------------------------------------

    def on_connect(self, connection_id: ConnectionId) -> list[Directive]:
        return [self._presence.presence_for(connection_id)]

    def on_disconnect(self, connection_id: ConnectionId) -> list[Directive]:
        session = self._registry.remove(connection_id)
        directives: list[Directive] = []

        if connection_id in self._typing:
            self._typing.discard(connection_id)
            if session is not None:
                directives.append(self._typing_directive(session, False))

        directives.extend(self._calls.disconnect(connection_id))

        if session is not None:
            logger.info("User left: %s (%s)", session.display_name, connection_id)
            directives.append(self._presence.broadcast_presence())
        return directives

    # -- handlers ----------------------------------------------------------

    def handle_join(self, connection_id: ConnectionId, payload: JoinIn) -> list[Directive]:
        if len(payload.display_name) > self._max_display_name_length:
            raise InvalidPayloadError(
                f"display_name longer than {self._max_display_name_length} characters"
            )
        session = self._registry.register(connection_id, payload.device_key, payload.display_name)
        logger.info("User joined: %s (%s)", session.display_name, connection_id)
        return [self._presence.broadcast_presence()]

    def handle_message(self, connection_id: ConnectionId, payload: MessageIn) -> list[Directive]:
        session = self._registry.lookup(connection_id)
        if session is None or not payload.text.strip():
            logger.debug("Dropping broadcast message from %s", connection_id)
            return []
        message = self._new_message(session, payload.text)
        return [Directive.broadcast(OutboundEvent.MESSAGE_CREATED, message.to_dict())]

    def handle_direct_message(
        self,
        connection_id: ConnectionId,
        payload: DirectMessageIn,
    ) -> list[Directive]:
        sender = self._registry.lookup(connection_id)
        if sender is None or not payload.text.strip():
            logger.debug("Dropping direct message from %s", connection_id)
            return []

        target = ConnectionId(payload.to)
        message = self._new_message(sender, payload.text).to_dict()
        delivered = target in self._registry
        directives: list[Directive] = []
        if delivered:
            directives.append(
                Directive.unicast(
                    target, OutboundEvent.DM_CREATED, {"from": connection_id, "message": message},
                )
            )
        else:
            logger.debug("Direct message target %s is not connected", target)

        echo: dict[str, Any] = {"from": target, "message": message}
        if self._dm_delivery_status:
            echo["delivered"] = delivered
        directives.append(Directive.unicast(connection_id, OutboundEvent.DM_CREATED, echo))
        return directives

    def handle_typing(self, connection_id: ConnectionId, payload: TypingIn) -> list[Directive]:
        session = self._registry.lookup(connection_id)
        if session is None:
            return []
        if payload.is_typing:
            self._typing.add(connection_id)
        else:
            self._typing.discard(connection_id)
        return [self._typing_directive(session, payload.is_typing)]

    def handle_call_offer(self, connection_id: ConnectionId, payload: CallOfferIn) -> list[Directive]:
        caller = self._registry.lookup(connection_id)
        if caller is None:
            logger.debug("Dropping call offer from unjoined connection %s", connection_id)
            return []
        return self._calls.offer(
            connection_id, ConnectionId(payload.to), caller.display_name, payload.offer,
        )

    def handle_call_answer(self, connection_id: ConnectionId, payload: CallAnswerIn) -> list[Directive]:
        return self._calls.answer(connection_id, ConnectionId(payload.to), payload.answer)

    def handle_ice_candidate(
        self,
        connection_id: ConnectionId,
        payload: IceCandidateIn,
    ) -> list[Directive]:
        return self._calls.ice_candidate(connection_id, ConnectionId(payload.to), payload.candidate)

    def handle_call_end(self, connection_id: ConnectionId, payload: CallEndIn) -> list[Directive]:
        return self._calls.end(connection_id, ConnectionId(payload.to))

    def expire_offers(self) -> list[Directive]:
        return self._calls.expire()

    # -- helpers -----------------------------------------------------------

    def _new_message(self, sender: Session, text: str) -> ChatMessage:
        return ChatMessage(
            id=MessageId(uuid.uuid4()),
            text=text,
            sender_name=sender.display_name,
            sender_device_key=sender.device_key,
            avatar=sender.avatar,
            timestamp=self._clock.now(),
        )

    def _typing_directive(self, session: Session, is_typing: bool) -> Directive:
        return Directive.broadcast(
            OutboundEvent.USER_TYPING,
            {
                "connection_id": session.connection_id,
                "display_name": session.display_name,
                "is_typing": is_typing,
            },
            exclude=session.connection_id,
        )
