from __future__ import annotations

from typing import Optional

from pydantic import Field

from carevoice.core.constants import NotificationPriority, SpeechKind
from carevoice.models.base import BaseModel


class CommandInfo(BaseModel):
    command: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""


class PresetInfo(BaseModel):
    kind: SpeechKind
    priority: Optional[NotificationPriority] = None
    rate: float
    pitch: float
    volume: Optional[float] = None


class SessionInfo(BaseModel):
    session_id: str
    is_listening: bool
    is_speaking: bool
    language: str
    commands: int


class TranscriptRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)


class TranscriptResponse(BaseModel):
    recognized: bool
    command: Optional[str] = None


class SpeakRequest(BaseModel):
    text: str = Field(min_length=1, max_length=2000)
    kind: SpeechKind = SpeechKind.PLAIN
    priority: NotificationPriority = NotificationPriority.MEDIUM
    queued: bool = False
