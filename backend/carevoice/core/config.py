from __future__ import annotations

import inspect
import json
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from carevoice.core.constants import (
    CONFIRMATION_SPEECH_RATE,
    DEFAULT_CORS_ORIGINS,
    DEFAULT_LANGUAGE,
    DEFAULT_MAX_SESSIONS,
    DEFAULT_RESTART_BACKOFF_SECONDS,
    DEFAULT_RESTART_MAX_ATTEMPTS,
    DEFAULT_RESTART_MAX_BACKOFF_SECONDS,
    DEFAULT_SPEECH_PITCH,
    DEFAULT_SPEECH_RATE,
    DEFAULT_SPEECH_VOLUME,
    MAX_WS_MESSAGE_BYTES,
)
from carevoice.core.exceptions import ConfigError


class RestartConfig(BaseModel):
    # None disables the ceiling (restart forever)
    max_attempts: Optional[int] = Field(default=DEFAULT_RESTART_MAX_ATTEMPTS, ge=1)
    backoff_seconds: float = Field(default=DEFAULT_RESTART_BACKOFF_SECONDS, ge=0.0)
    max_backoff_seconds: float = Field(default=DEFAULT_RESTART_MAX_BACKOFF_SECONDS, ge=0.0)


class VoiceConfig(BaseModel):
    enabled: bool = True
    language: str = DEFAULT_LANGUAGE
    continuous: bool = True
    auto_start: bool = False
    announce_ready: bool = True
    restart: RestartConfig = Field(default_factory=RestartConfig)


class SpeechConfig(BaseModel):
    rate: float = Field(default=DEFAULT_SPEECH_RATE, ge=0.1, le=10.0)
    pitch: float = Field(default=DEFAULT_SPEECH_PITCH, ge=0.0, le=2.0)
    volume: float = Field(default=DEFAULT_SPEECH_VOLUME, ge=0.0, le=1.0)
    confirmation_rate: float = Field(default=CONFIRMATION_SPEECH_RATE, ge=0.1, le=10.0)
    voice_name: Optional[str] = None


class WebConfig(BaseModel):
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS)
    )
    max_sessions: int = Field(default=DEFAULT_MAX_SESSIONS, ge=1)
    max_message_bytes: int = Field(default=MAX_WS_MESSAGE_BYTES, ge=256)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: Optional[str] = "logs"


class EnvSettings(BaseSettings):
    """Loads overrides from .env file or ``CAREVOICE_*`` environment variables."""

    log_level: str = ""
    config_path: str = "config.json"

    model_config = SettingsConfigDict(
        env_prefix="CAREVOICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Config:
    """Application configuration loaded from config.json + .env.

    Implements singleton access via ``get_instance`` and supports runtime
    hot-reload of sections with observer notifications.
    """

    _instance: Optional[Config] = None

    _SECTIONS: tuple[str, ...] = ("voice", "speech", "web", "logging")

    def __init__(
        self,
        voice: Optional[VoiceConfig] = None,
        speech: Optional[SpeechConfig] = None,
        web: Optional[WebConfig] = None,
        logging: Optional[LoggingConfig] = None,
        env: Optional[EnvSettings] = None,
        config_path: Optional[Path] = None,
    ) -> None:
        self.voice = voice or VoiceConfig()
        self.speech = speech or SpeechConfig()
        self.web = web or WebConfig()
        self.logging = logging or LoggingConfig()
        self.env = env or EnvSettings()
        self.config_path = config_path
        self._observers: list[Callable[[str, Any, Any], Any]] = []

        if self.env.log_level:
            self.logging.level = self.env.log_level

    # ------------------------------------------------------------------
    # Singleton access
    # ------------------------------------------------------------------

    @classmethod
    def get_instance(cls) -> Config:
        if cls._instance is None:
            raise ConfigError("Config has not been loaded. Call Config.from_file() first.")
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    @classmethod
    def from_file(
        cls,
        config_path: Path | str | None = None,
        env_path: Path | str = ".env",
    ) -> Config:
        """Load *config_path* (defaults to ``CAREVOICE_CONFIG_PATH``).

        A missing file yields the built-in defaults; malformed JSON or
        values that fail validation raise :class:`ConfigError`.
        """
        load_dotenv(dotenv_path=Path(env_path), override=False)
        env = EnvSettings()

        path = Path(config_path or env.config_path)

        raw: dict[str, Any] = {}
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
            if not isinstance(raw, dict):
                raise ConfigError(f"Top-level JSON in {path} must be an object")

        try:
            instance = cls(
                voice=VoiceConfig(**raw.get("voice", {})),
                speech=SpeechConfig(**raw.get("speech", {})),
                web=WebConfig(**raw.get("web", {})),
                logging=LoggingConfig(**raw.get("logging", {})),
                env=env,
                config_path=path,
            )
        except Exception as exc:
            raise ConfigError(f"Config validation failed: {exc}") from exc

        cls._instance = instance
        return instance

    # ------------------------------------------------------------------
    # Hot-reload support
    # ------------------------------------------------------------------

    def add_observer(self, callback: Callable[[str, Any, Any], Any]) -> None:
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[str, Any, Any], Any]) -> None:
        self._observers = [cb for cb in self._observers if cb is not callback]

    async def _notify_observers(self, section: str, old_value: Any, new_value: Any) -> None:
        for callback in self._observers:
            result = callback(section, old_value, new_value)
            if inspect.isawaitable(result):
                await result

    async def update_section(self, section: str, data: dict[str, Any]) -> None:
        """Merge *data* into *section*, validate, then notify observers."""
        if section not in self._SECTIONS:
            raise ConfigError(f"Unknown config section: {section}")

        current = getattr(self, section)
        model_cls = type(current)
        old_value = current.model_copy()
        try:
            new_value = model_cls(**{**current.model_dump(), **data})
        except Exception as exc:
            raise ConfigError(f"Invalid values for section '{section}': {exc}") from exc
        setattr(self, section, new_value)
        await self._notify_observers(section, old_value, new_value)

    async def reload_from_file(self) -> None:
        if self.config_path is None or not self.config_path.exists():
            raise ConfigError("Cannot reload: config file path is not set or file missing.")

        try:
            raw = json.loads(self.config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {self.config_path}: {exc}") from exc

        for section in self._SECTIONS:
            if section in raw:
                await self.update_section(section, raw[section])

    def to_dict(self) -> dict[str, Any]:
        return {section: getattr(self, section).model_dump() for section in self._SECTIONS}
