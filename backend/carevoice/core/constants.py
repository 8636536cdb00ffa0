from __future__ import annotations

from enum import Enum


class RecognitionErrorCode(str, Enum):
    NO_SPEECH = "no-speech"
    AUDIO_CAPTURE = "audio-capture"
    NOT_ALLOWED = "not-allowed"
    NETWORK = "network"
    ABORTED = "aborted"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: str | None) -> RecognitionErrorCode:
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SpeechKind(str, Enum):
    PLAIN = "plain"
    NOTIFICATION = "notification"
    ERROR = "error"
    INSTRUCTION = "instruction"
    MESSAGE = "message"


class DashboardSection(str, Enum):
    HOME = "home"
    HEALTH = "health"
    MEDICATIONS = "medications"
    APPOINTMENTS = "appointments"
    MESSAGES = "messages"
    SETTINGS = "settings"


# ── Locale ────────────────────────────────────────────────────────────
DEFAULT_LANGUAGE: str = "en-US"

# ── Speech defaults ───────────────────────────────────────────────────
# Slightly slower than normal for elderly listeners
DEFAULT_SPEECH_RATE: float = 0.9
DEFAULT_SPEECH_PITCH: float = 1.0
DEFAULT_SPEECH_VOLUME: float = 1.0
CONFIRMATION_SPEECH_RATE: float = 1.2

# ── Prosody presets ───────────────────────────────────────────────────
# (rate, pitch, volume); None keeps the default volume
NOTIFICATION_PRESETS: dict[NotificationPriority, tuple[float, float, float]] = {
    NotificationPriority.CRITICAL: (1.0, 1.2, 1.0),
    NotificationPriority.HIGH: (0.95, 1.1, 1.0),
    NotificationPriority.MEDIUM: (0.9, 1.0, 0.9),
    NotificationPriority.LOW: (0.85, 0.9, 0.8),
}
ERROR_PRESET: tuple[float, float, None] = (0.85, 0.9, None)
INSTRUCTION_PRESET: tuple[float, float, None] = (0.8, 1.0, None)
MESSAGE_PRESET: tuple[float, float, None] = (0.9, 1.0, None)

# ── Recognition messages ──────────────────────────────────────────────
RECOGNITION_ERROR_MESSAGES: dict[RecognitionErrorCode, str] = {
    RecognitionErrorCode.NO_SPEECH: "No speech detected. Please try again.",
    RecognitionErrorCode.AUDIO_CAPTURE: "Microphone not available. Please check permissions.",
    RecognitionErrorCode.NOT_ALLOWED: "Microphone access denied. Please allow microphone access.",
    RecognitionErrorCode.NETWORK: "Network error. Please check your connection.",
}
GENERIC_RECOGNITION_ERROR: str = "Voice navigation error occurred"
RECOGNITION_UNSUPPORTED: str = "Voice navigation is not supported in this browser"
RECOGNITION_UNAVAILABLE: str = "Voice navigation is not available"
RECOGNITION_START_FAILED: str = "Failed to start voice navigation"
RECOGNITION_RETRIES_EXHAUSTED: str = (
    "Voice navigation stopped after repeated errors. Please try again."
)
COMMAND_NOT_RECOGNIZED: str = 'Command not recognized: "{transcript}". Please try again.'
COMMAND_FAILED: str = "Voice command failed: {command}"

# ── Synthesis messages ────────────────────────────────────────────────
SYNTHESIS_UNSUPPORTED: str = "Text-to-speech is not supported in this browser"
SYNTHESIS_FAILED: str = "Failed to speak text"
VOICE_SERVICES_UNAVAILABLE: str = "Voice services are not available in this browser"

# ── Session announcements ─────────────────────────────────────────────
LISTENING_ACTIVATED: str = "Voice navigation activated"
LISTENING_DEACTIVATED: str = "Voice navigation deactivated"
COMMAND_CONFIRMATION: str = "{command} activated"
VOICE_READY_ANNOUNCEMENT: str = 'Voice navigation is ready. Say "help" to hear available commands.'

# ── Auto-restart policy ───────────────────────────────────────────────
DEFAULT_RESTART_MAX_ATTEMPTS: int = 5
DEFAULT_RESTART_BACKOFF_SECONDS: float = 0.0
DEFAULT_RESTART_MAX_BACKOFF_SECONDS: float = 30.0

# ── Logging ───────────────────────────────────────────────────────────
LOG_FILE_NAME: str = "carevoice.log"
LOG_MAX_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: int = 7

# ── Web bridge ────────────────────────────────────────────────────────
DEFAULT_CORS_ORIGINS: list[str] = ["http://localhost:5173"]
DEFAULT_MAX_SESSIONS: int = 50
MAX_WS_MESSAGE_BYTES: int = 8192  # 8 KB
