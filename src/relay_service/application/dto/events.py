"""Inbound event payloads, one model per event type."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JoinIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    device_key: str = Field(min_length=1)
    display_name: str = Field(min_length=1)


class MessageIn(BaseModel):
    text: str


class DirectMessageIn(BaseModel):
    to: str
    text: str


class TypingIn(BaseModel):
    is_typing: bool


class CallOfferIn(BaseModel):
    to: str
    offer: Any = None


class CallAnswerIn(BaseModel):
    to: str
    answer: Any = None


class IceCandidateIn(BaseModel):
    to: str
    candidate: Any = None


class CallEndIn(BaseModel):
    to: str
