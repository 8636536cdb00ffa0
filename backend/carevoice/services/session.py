"""Voice session: recognizer, command registry and synthesizer bound together."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

from carevoice.core.config import SpeechConfig, VoiceConfig
from carevoice.core.constants import (
    COMMAND_CONFIRMATION,
    LISTENING_ACTIVATED,
    LISTENING_DEACTIVATED,
    VOICE_READY_ANNOUNCEMENT,
    VOICE_SERVICES_UNAVAILABLE,
    NotificationPriority,
)
from carevoice.core.exceptions import UnsupportedPlatformError
from carevoice.core.logging import get_logger
from carevoice.models.events import (
    CommandRecognizedEvent,
    ListeningChangedEvent,
    SpeakingChangedEvent,
    VoiceErrorEvent,
)
from carevoice.models.voice import RecognitionResult, SessionState, SpeechOptions, VoiceCommand
from carevoice.voice.recognizer import CallLater, RestartPolicy, SpeechRecognizer
from carevoice.voice.registry import CommandRegistry
from carevoice.voice.synthesizer import SpeechSynthesizer

if TYPE_CHECKING:
    from carevoice.core.events import EventBus
    from carevoice.models.events import Event
    from carevoice.voice.engines import RecognitionEngine, SynthesisEngine

logger = get_logger(__name__)


class VoiceSession:
    """Session-scoped voice navigation API for a UI layer.

    Flow: the recognizer emits a transcript, the registry resolves it and
    runs the command's action, then the session confirms it out loud.

    State (``is_listening`` / ``is_speaking``) changes only in response to
    recognizer and synthesizer lifecycle callbacks.  After :meth:`destroy`
    no callback reaches the caller.
    """

    def __init__(
        self,
        recognition_engine: Optional[RecognitionEngine],
        synthesis_engine: Optional[SynthesisEngine],
        voice_config: Optional[VoiceConfig] = None,
        speech_config: Optional[SpeechConfig] = None,
        *,
        session_id: Optional[str] = None,
        on_command_recognized: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_state_change: Optional[Callable[[SessionState], None]] = None,
        event_bus: Optional[EventBus] = None,
        call_later: Optional[CallLater] = None,
    ) -> None:
        self._voice_config = voice_config or VoiceConfig()
        self._speech_config = speech_config or SpeechConfig()
        self._session_id = session_id or uuid.uuid4().hex
        self._on_command_recognized = on_command_recognized
        self._on_error = on_error
        self._on_state_change = on_state_change
        self._event_bus = event_bus

        self._state = SessionState()
        self._closed = False
        self._last_transcript = ""

        self._registry = CommandRegistry(
            on_recognized=self._handle_command_recognized,
            on_error=self._handle_command_error,
        )

        # Synthesizer first so recognizer construction errors can be spoken
        self._synthesizer: Optional[SpeechSynthesizer] = None
        try:
            self._synthesizer = SpeechSynthesizer(
                synthesis_engine,
                defaults=SpeechOptions(
                    language=self._voice_config.language,
                    rate=self._speech_config.rate,
                    pitch=self._speech_config.pitch,
                    volume=self._speech_config.volume,
                    on_error=self._handle_speech_error,
                ),
                on_speaking_change=self._handle_speaking_change,
                voice_name=self._speech_config.voice_name,
            )
        except UnsupportedPlatformError as exc:
            logger.warning("Speech output unavailable: %s", exc.message)
            self._report(VOICE_SERVICES_UNAVAILABLE, source="synthesis")

        self._recognizer = SpeechRecognizer(
            recognition_engine,
            language=self._voice_config.language,
            continuous=self._voice_config.continuous,
            restart_policy=RestartPolicy.from_config(self._voice_config.restart),
            on_result=self._handle_result,
            on_error=self._handle_recognition_error,
            on_listening_change=self._handle_listening_change,
            call_later=call_later,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Apply the configured start-up behaviour (auto-start, ready prompt)."""
        if self._closed or not self._voice_config.enabled:
            return
        if self._voice_config.auto_start:
            self._recognizer.start()
            if self._voice_config.announce_ready and self._recognizer.is_listening:
                self.speak_instruction(VOICE_READY_ANNOUNCEMENT)

    def destroy(self) -> None:
        """Stop listening, silence speech and forget every command."""
        if self._closed:
            return
        self._closed = True
        self._recognizer.destroy()
        if self._synthesizer is not None:
            self._synthesizer.cancel()
        self._registry.clear()
        self._state = SessionState()
        logger.info("Voice session %s closed", self._session_id)

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    def start_listening(self) -> None:
        if self._closed:
            return
        self._recognizer.start()
        if self._recognizer.is_listening:
            self._confirm(LISTENING_ACTIVATED)

    def stop_listening(self) -> None:
        if self._closed:
            return
        self._recognizer.stop()
        self._confirm(LISTENING_DEACTIVATED)

    def handle_transcript(self, text: str) -> Optional[VoiceCommand]:
        """Dispatch text that did not come from the recognizer (typed, relayed)."""
        if self._closed:
            return None
        transcript = text.lower().strip()
        if not transcript:
            return None
        self._last_transcript = transcript
        return self._registry.resolve(transcript)

    def set_language(self, language: str) -> None:
        self._recognizer.set_language(language)
        if self._synthesizer is not None:
            self._synthesizer.set_language(language)
        self._voice_config = self._voice_config.model_copy(update={"language": language})
        logger.info("Voice session %s language set to %s", self._session_id, language)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def register_command(self, command: VoiceCommand) -> None:
        if self._closed:
            return
        self._registry.register_command(command)

    def unregister_command(self, phrase: str) -> None:
        self._registry.unregister_command(phrase)

    @contextmanager
    def commands(self, commands: Iterable[VoiceCommand]) -> Iterator[list[VoiceCommand]]:
        """Register *commands* for the duration of the ``with`` block."""
        bound = list(commands)
        for command in bound:
            self.register_command(command)
        try:
            yield bound
        finally:
            for command in bound:
                self.unregister_command(command.command)

    def get_commands(self) -> list[VoiceCommand]:
        return self._registry.get_commands()

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def speak(self, text: str, *, queued: bool = False) -> None:
        if self._synthesizer is None or self._closed:
            return
        if queued:
            self._synthesizer.enqueue(text)
        else:
            self._synthesizer.speak(text)

    def speak_notification(
        self,
        message: str,
        priority: NotificationPriority | str = NotificationPriority.MEDIUM,
        *,
        queued: bool = False,
    ) -> None:
        if self._synthesizer is not None and not self._closed:
            self._synthesizer.speak_notification(message, priority, queued=queued)

    def speak_error(self, message: str, *, queued: bool = False) -> None:
        if self._synthesizer is not None and not self._closed:
            self._synthesizer.speak_error(message, queued=queued)

    def speak_instruction(self, instruction: str, *, queued: bool = False) -> None:
        if self._synthesizer is not None and not self._closed:
            self._synthesizer.speak_instruction(instruction, queued=queued)

    def read_message(self, message: str, *, queued: bool = False) -> None:
        if self._synthesizer is not None and not self._closed:
            self._synthesizer.read_message(message, queued=queued)

    def cancel_speech(self) -> None:
        if self._synthesizer is not None:
            self._synthesizer.cancel()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return replace(self._state)

    @property
    def is_listening(self) -> bool:
        return self._state.is_listening

    @property
    def is_speaking(self) -> bool:
        return self._state.is_speaking

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def language(self) -> str:
        return self._voice_config.language

    @property
    def last_transcript(self) -> str:
        return self._last_transcript

    @property
    def recognizer(self) -> SpeechRecognizer:
        return self._recognizer

    @property
    def synthesizer(self) -> Optional[SpeechSynthesizer]:
        return self._synthesizer

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _handle_result(self, result: RecognitionResult) -> None:
        if self._closed:
            return
        self._last_transcript = result.transcript
        self._registry.resolve(result.transcript)

    def _handle_command_recognized(self, command: str) -> None:
        if self._closed:
            return
        logger.info("Voice command recognized: %s", command)
        self._publish(
            CommandRecognizedEvent(
                session_id=self._session_id,
                command=command,
                transcript=self._last_transcript,
            )
        )
        if self._on_command_recognized is not None:
            self._on_command_recognized(command)
        # Queued so speech started by the command's own action is not cut off
        if self._synthesizer is not None:
            self._synthesizer.enqueue(
                COMMAND_CONFIRMATION.format(command=command),
                SpeechOptions(rate=self._speech_config.confirmation_rate),
            )

    def _handle_command_error(self, message: str) -> None:
        self._report(message, source="command")

    def _handle_recognition_error(self, message: str) -> None:
        self._report(message, source="recognition")

    def _handle_speech_error(self, message: str) -> None:
        self._report(message, source="synthesis")

    def _handle_listening_change(self, listening: bool) -> None:
        if self._closed:
            return
        self._state.is_listening = listening
        self._publish(ListeningChangedEvent(session_id=self._session_id, is_listening=listening))
        self._notify_state()

    def _handle_speaking_change(self, speaking: bool) -> None:
        if self._closed:
            return
        self._state.is_speaking = speaking
        self._publish(SpeakingChangedEvent(session_id=self._session_id, is_speaking=speaking))
        self._notify_state()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _report(self, message: str, source: str) -> None:
        """Forward an error to the caller and, unless speech itself failed, say it."""
        if self._closed:
            return
        self._publish(VoiceErrorEvent(session_id=self._session_id, source=source, message=message))
        if self._on_error is not None:
            self._on_error(message)
        if source != "synthesis" and self._synthesizer is not None:
            self._synthesizer.speak_error(message)

    def _confirm(self, text: str) -> None:
        if self._synthesizer is not None:
            self._synthesizer.speak(text, SpeechOptions(rate=self._speech_config.confirmation_rate))

    def _notify_state(self) -> None:
        if self._on_state_change is not None:
            self._on_state_change(self.state)

    def _publish(self, event: Event) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)
