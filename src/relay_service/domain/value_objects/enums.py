from __future__ import annotations

from enum import StrEnum


class InboundEvent(StrEnum):
    JOIN = "join"
    MESSAGE_SEND = "message.send"
    DM_SEND = "dm.send"
    TYPING = "typing"
    CALL_OFFER = "call.offer"
    CALL_ANSWER = "call.answer"
    CALL_ICE_CANDIDATE = "call.ice_candidate"
    CALL_END = "call.end"
    PING = "ping"


class OutboundEvent(StrEnum):
    PRESENCE_USERS = "presence.users"
    MESSAGE_CREATED = "message.created"
    DM_CREATED = "dm.created"
    USER_TYPING = "user.typing"
    CALL_OFFER = "call.offer"
    CALL_ANSWER = "call.answer"
    CALL_ICE_CANDIDATE = "call.ice_candidate"
    CALL_ENDED = "call.ended"
    PONG = "pong"
    ERROR = "error"


class CallState(StrEnum):
    OFFERING = "offering"
    ACTIVE = "active"


class CallEndReason(StrEnum):
    ENDED = "ended"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"
    DISCONNECTED = "disconnected"
    TIMEOUT = "timeout"
