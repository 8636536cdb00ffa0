from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Callable, Optional

from carevoice.core.constants import DEFAULT_LANGUAGE

Action = Callable[[], None]
ErrorCallback = Callable[[str], None]


@dataclass
class VoiceCommand:
    """A spoken command: a primary phrase, its aliases and the callback to run."""

    command: str
    aliases: list[str] = field(default_factory=list)
    action: Action = lambda: None
    description: str = ""

    def keys(self) -> list[str]:
        """Return the lower-cased registry keys, primary phrase first."""
        return [self.command.lower()] + [alias.lower() for alias in self.aliases]


@dataclass(frozen=True)
class RecognitionResult:
    transcript: str
    is_final: bool = True
    confidence: float = 0.0


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str
    default: bool = False


@dataclass
class SpeechOptions:
    """Per-call speech settings.  ``None`` fields inherit from the defaults."""

    language: Optional[str] = None
    rate: Optional[float] = None
    pitch: Optional[float] = None
    volume: Optional[float] = None
    voice: Optional[Voice] = None
    on_start: Optional[Callable[[], None]] = None
    on_end: Optional[Callable[[], None]] = None
    on_error: Optional[ErrorCallback] = None

    def merged_over(self, defaults: SpeechOptions) -> SpeechOptions:
        """Return a copy of *defaults* with every field set here overriding it."""
        overrides = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
        return replace(defaults, **overrides)


@dataclass
class Utterance:
    """One unit of synthesized speech handed to a synthesis engine.

    Engines call ``on_start`` when playback begins, then exactly one of
    ``on_end`` or ``on_error(code)``.
    """

    text: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    language: str = DEFAULT_LANGUAGE
    voice: Optional[Voice] = None
    on_start: Optional[Callable[[], None]] = None
    on_end: Optional[Callable[[], None]] = None
    on_error: Optional[ErrorCallback] = None


@dataclass
class SessionState:
    is_listening: bool = False
    is_speaking: bool = False
