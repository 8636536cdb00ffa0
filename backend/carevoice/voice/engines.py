from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Optional

from carevoice.core.constants import DEFAULT_LANGUAGE

if TYPE_CHECKING:
    from carevoice.models.voice import Utterance, Voice


class RecognitionEngine(ABC):
    """Abstract speech-recognition engine.

    Mirrors the callback-slot shape of the browser ``SpeechRecognition``
    object.  The owner assigns the ``on_*`` slots; the engine invokes them
    as capture progresses:

    * ``on_start()`` once capture begins
    * ``on_result(payload)`` with a raw result mapping
      (``{"resultIndex": int, "results": [{"isFinal": bool,
      "alternatives": [{"transcript": str, "confidence": float}]}]}``)
    * ``on_error(payload)`` with ``{"error": code, "message": str}``
    * ``on_end()`` once capture stops, for any reason
    """

    def __init__(self) -> None:
        self.continuous: bool = False
        self.interim_results: bool = False
        self.lang: str = DEFAULT_LANGUAGE

        self.on_start: Optional[Callable[[], None]] = None
        self.on_result: Optional[Callable[[dict[str, Any]], None]] = None
        self.on_error: Optional[Callable[[dict[str, Any]], None]] = None
        self.on_end: Optional[Callable[[], None]] = None

    @abstractmethod
    def start(self) -> None:
        """Begin capturing audio.  May raise if capture is already running."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing and deliver any pending result."""

    @abstractmethod
    def abort(self) -> None:
        """Stop capturing and discard any pending result."""

    def detach(self) -> None:
        """Clear every handler slot so later engine events go nowhere."""
        self.on_start = None
        self.on_result = None
        self.on_error = None
        self.on_end = None


class SynthesisEngine(ABC):
    """Abstract speech-synthesis engine.

    A process-wide resource: the engine plays one utterance at a time and
    reports progress through the utterance's own callbacks.
    """

    @property
    @abstractmethod
    def speaking(self) -> bool:
        """Whether an utterance is currently being played."""

    @property
    @abstractmethod
    def paused(self) -> bool:
        """Whether playback is paused."""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Queue *utterance* for playback on the engine."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop playback and drop everything the engine has queued."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def resume(self) -> None:
        """Resume paused playback."""

    @abstractmethod
    def get_voices(self) -> list[Voice]:
        """Return the voices installed on the platform."""
