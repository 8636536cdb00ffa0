from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Event:
    """Base event. All events carry a UTC timestamp."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# -- Command events ---------------------------------------------------------

@dataclass(frozen=True)
class CommandRecognizedEvent(Event):
    session_id: str = ""
    command: str = ""
    transcript: str = ""


# -- Session state events ---------------------------------------------------

@dataclass(frozen=True)
class ListeningChangedEvent(Event):
    session_id: str = ""
    is_listening: bool = False


@dataclass(frozen=True)
class SpeakingChangedEvent(Event):
    session_id: str = ""
    is_speaking: bool = False


@dataclass(frozen=True)
class VoiceErrorEvent(Event):
    session_id: str = ""
    source: str = ""  # "recognition", "command", "synthesis"
    message: str = ""


# -- Dashboard events -------------------------------------------------------

@dataclass(frozen=True)
class SectionChangedEvent(Event):
    session_id: str = ""
    old_section: str = ""
    new_section: str = ""


@dataclass(frozen=True)
class EmergencyRequestedEvent(Event):
    session_id: str = ""
    transcript: str = ""


# -- Config events ----------------------------------------------------------

@dataclass(frozen=True)
class ConfigChangedEvent(Event):
    section: str = ""
    old_value: Any = None
    new_value: Any = None
