from __future__ import annotations

from carevoice.models.enums import (
    DashboardSection,
    NotificationPriority,
    RecognitionErrorCode,
    SpeechKind,
)
from carevoice.models.base import BaseModel as AppBaseModel
from carevoice.models.voice import (
    RecognitionResult,
    SessionState,
    SpeechOptions,
    Utterance,
    Voice,
    VoiceCommand,
)
from carevoice.models.engine import (
    RecognitionAlternative,
    RecognitionErrorPayload,
    RecognitionEventPayload,
    RecognitionResultPayload,
    VoicePayload,
)
from carevoice.models.events import (
    Event,
    CommandRecognizedEvent,
    ListeningChangedEvent,
    SpeakingChangedEvent,
    VoiceErrorEvent,
    SectionChangedEvent,
    EmergencyRequestedEvent,
    ConfigChangedEvent,
)

__all__ = [
    "DashboardSection",
    "NotificationPriority",
    "RecognitionErrorCode",
    "SpeechKind",
    "AppBaseModel",
    "RecognitionResult",
    "SessionState",
    "SpeechOptions",
    "Utterance",
    "Voice",
    "VoiceCommand",
    "RecognitionAlternative",
    "RecognitionErrorPayload",
    "RecognitionEventPayload",
    "RecognitionResultPayload",
    "VoicePayload",
    "Event",
    "CommandRecognizedEvent",
    "ListeningChangedEvent",
    "SpeakingChangedEvent",
    "VoiceErrorEvent",
    "SectionChangedEvent",
    "EmergencyRequestedEvent",
    "ConfigChangedEvent",
]
