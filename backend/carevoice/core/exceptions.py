from __future__ import annotations

from typing import Optional


class CareVoiceError(Exception):
    """Base exception for the carevoice project."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(self.message)


class ConfigError(CareVoiceError):
    """Raised when configuration loading or validation fails."""


class UnsupportedPlatformError(CareVoiceError):
    """Raised when the platform offers no speech engine for a required capability."""


class EngineError(CareVoiceError):
    """Raised by engine adapters when the platform engine rejects a call."""

    def __init__(self, engine: str, code: Optional[str] = None, message: str = "") -> None:
        self.engine = engine
        self.code = code
        super().__init__(message)


class SessionLimitError(CareVoiceError):
    """Raised when a new voice session would exceed the configured ceiling."""


class SessionNotFoundError(CareVoiceError):
    """Raised when no live voice session has the requested id."""
