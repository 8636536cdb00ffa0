from __future__ import annotations

from carevoice.core.constants import (
    DashboardSection,
    NotificationPriority,
    RecognitionErrorCode,
    SpeechKind,
)

__all__ = [
    "DashboardSection",
    "NotificationPriority",
    "RecognitionErrorCode",
    "SpeechKind",
]
