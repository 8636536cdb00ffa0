"""Queued text-to-speech with prosody presets for elderly listeners."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Callable, Optional

from carevoice.core.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_SPEECH_PITCH,
    DEFAULT_SPEECH_RATE,
    DEFAULT_SPEECH_VOLUME,
    ERROR_PRESET,
    INSTRUCTION_PRESET,
    MESSAGE_PRESET,
    NOTIFICATION_PRESETS,
    SYNTHESIS_FAILED,
    SYNTHESIS_UNSUPPORTED,
    NotificationPriority,
    SpeechKind,
)
from carevoice.core.exceptions import UnsupportedPlatformError
from carevoice.core.logging import get_logger
from carevoice.models.voice import SpeechOptions, Utterance, Voice

if TYPE_CHECKING:
    from carevoice.voice.engines import SynthesisEngine

logger = get_logger(__name__)


class SpeechSynthesizer:
    """Serializes speech requests so overlapping output never garbles.

    ``speak`` preempts: it cancels whatever is playing or queued.
    ``enqueue`` never preempts: it waits for the active utterance to end.
    Exactly one utterance is handed to the engine at a time.

    Utterance failures are reported through that call's ``on_error`` and do
    not stop the queue.  Only a missing engine raises, at construction.
    """

    def __init__(
        self,
        engine: Optional[SynthesisEngine],
        defaults: Optional[SpeechOptions] = None,
        on_speaking_change: Optional[Callable[[bool], None]] = None,
        voice_name: Optional[str] = None,
    ) -> None:
        if engine is None:
            raise UnsupportedPlatformError(SYNTHESIS_UNSUPPORTED)

        self._engine = engine
        self._on_speaking_change = on_speaking_change
        self._voice_name = voice_name
        base = SpeechOptions(
            language=DEFAULT_LANGUAGE,
            rate=DEFAULT_SPEECH_RATE,
            pitch=DEFAULT_SPEECH_PITCH,
            volume=DEFAULT_SPEECH_VOLUME,
        )
        self._defaults = defaults.merged_over(base) if defaults is not None else base
        self._queue: deque[tuple[str, Optional[SpeechOptions]]] = deque()
        self._active: Optional[Utterance] = None
        self._speaking = False

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def speak(self, text: str, options: Optional[SpeechOptions] = None) -> None:
        """Cancel current and queued speech, then speak *text* right away."""
        if not text or not text.strip():
            return

        self.cancel()
        self._play(text, options)

    def enqueue(self, text: str, options: Optional[SpeechOptions] = None) -> None:
        """Speak *text* after everything already playing or queued."""
        if not text or not text.strip():
            return

        if self._active is not None:
            self._queue.append((text, options))
            logger.debug("Queued speech (%d pending)", len(self._queue))
        else:
            self._play(text, options)

    def pause(self) -> None:
        if self._engine.speaking and not self._engine.paused:
            self._engine.pause()

    def resume(self) -> None:
        if self._engine.paused:
            self._engine.resume()

    def cancel(self) -> None:
        """Stop playback and drop the whole pending queue."""
        # Forget the active utterance first so any "end" fired by the engine
        # while cancelling is recognised as stale.
        self._queue.clear()
        self._active = None
        self._set_speaking(False)
        try:
            self._engine.cancel()
        except Exception as exc:
            logger.error("Failed to cancel speech: %s", exc)

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def options_for(
        self,
        kind: SpeechKind | str,
        priority: NotificationPriority | str = NotificationPriority.MEDIUM,
    ) -> SpeechOptions:
        """Return the prosody preset for a category of speech."""
        kind = SpeechKind(kind)
        if kind is SpeechKind.NOTIFICATION:
            rate, pitch, volume = NOTIFICATION_PRESETS[NotificationPriority(priority)]
            return SpeechOptions(rate=rate, pitch=pitch, volume=volume)
        if kind is SpeechKind.ERROR:
            rate, pitch, _ = ERROR_PRESET
        elif kind is SpeechKind.INSTRUCTION:
            rate, pitch, _ = INSTRUCTION_PRESET
        elif kind is SpeechKind.MESSAGE:
            rate, pitch, _ = MESSAGE_PRESET
        else:
            return SpeechOptions()
        return SpeechOptions(rate=rate, pitch=pitch)

    def speak_notification(
        self,
        message: str,
        priority: NotificationPriority | str = NotificationPriority.MEDIUM,
        *,
        queued: bool = False,
    ) -> None:
        """Speak a notification with a tone matching its urgency."""
        self._say(message, self.options_for(SpeechKind.NOTIFICATION, priority), queued)

    def speak_error(self, message: str, *, queued: bool = False) -> None:
        """Speak an error slower and lower than normal speech."""
        self._say(message, self.options_for(SpeechKind.ERROR), queued)

    def speak_instruction(self, instruction: str, *, queued: bool = False) -> None:
        """Speak step-by-step guidance at the slowest pace."""
        self._say(instruction, self.options_for(SpeechKind.INSTRUCTION), queued)

    def read_message(self, message: str, *, queued: bool = False) -> None:
        """Read a message aloud in a natural, conversational tone."""
        self._say(message, self.options_for(SpeechKind.MESSAGE), queued)

    # ------------------------------------------------------------------
    # Voices and settings
    # ------------------------------------------------------------------

    def get_voices(self) -> list[Voice]:
        return self._engine.get_voices()

    def get_preferred_voice(self, language: str = DEFAULT_LANGUAGE) -> Optional[Voice]:
        """Exact locale match first, else any voice sharing the language code."""
        voices = self.get_voices()

        for voice in voices:
            if voice.lang == language:
                return voice

        language_code = language.split("-")[0]
        for voice in voices:
            if voice.lang.startswith(language_code):
                return voice
        return None

    def set_language(self, language: str) -> None:
        self._defaults.language = language

    @property
    def defaults(self) -> SpeechOptions:
        return self._defaults

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def is_busy(self) -> bool:
        """True from hand-off to the engine until the utterance ends or fails."""
        return self._active is not None

    @property
    def pending(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _say(self, text: str, options: SpeechOptions, queued: bool) -> None:
        if queued:
            self.enqueue(text, options)
        else:
            self.speak(text, options)

    def _play(self, text: str, options: Optional[SpeechOptions]) -> None:
        merged = (options or SpeechOptions()).merged_over(self._defaults)
        utterance = Utterance(
            text=text,
            rate=merged.rate,
            pitch=merged.pitch,
            volume=merged.volume,
            language=merged.language,
            voice=merged.voice or self._named_voice(),
        )
        utterance.on_start = lambda: self._handle_start(utterance, merged)
        utterance.on_end = lambda: self._handle_end(utterance, merged)
        utterance.on_error = lambda code: self._handle_error(utterance, merged, code)

        self._active = utterance
        try:
            self._engine.speak(utterance)
        except Exception as exc:
            logger.exception("Synthesis engine rejected utterance: %s", exc)
            self._handle_error(utterance, merged, str(exc))

    def _handle_start(self, utterance: Utterance, options: SpeechOptions) -> None:
        if utterance is not self._active:
            return
        self._set_speaking(True)
        if options.on_start is not None:
            options.on_start()

    def _handle_end(self, utterance: Utterance, options: SpeechOptions) -> None:
        if utterance is not self._active:
            return
        self._active = None
        self._set_speaking(False)
        if options.on_end is not None:
            options.on_end()
        self._advance()

    def _handle_error(self, utterance: Utterance, options: SpeechOptions, code: str) -> None:
        if utterance is not self._active:
            return
        logger.error("Text-to-speech error: %s", code)
        self._active = None
        self._set_speaking(False)
        if options.on_error is not None:
            options.on_error(SYNTHESIS_FAILED)
        self._advance()

    def _named_voice(self) -> Optional[Voice]:
        # Looked up per utterance: some platforms load voices asynchronously
        if not self._voice_name:
            return None
        for voice in self.get_voices():
            if voice.name == self._voice_name:
                return voice
        return None

    def _advance(self) -> None:
        if self._active is not None or not self._queue:
            return
        text, options = self._queue.popleft()
        self._play(text, options)

    def _set_speaking(self, value: bool) -> None:
        if self._speaking == value:
            return
        self._speaking = value
        if self._on_speaking_change is not None:
            self._on_speaking_change(value)
