"""Engines backed by a remote browser over a JSON message channel.

The browser runs the Web Speech API and relays its events to us as JSON
objects; we drive it with JSON commands through ``send``.  Message types are
namespaced ``recognition.*`` and ``synthesis.*``.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable

from pydantic import ValidationError

from carevoice.core.exceptions import EngineError
from carevoice.core.logging import get_logger
from carevoice.models.engine import VoicePayload
from carevoice.models.voice import Utterance, Voice
from carevoice.voice.engines import RecognitionEngine, SynthesisEngine

logger = get_logger(__name__)

Send = Callable[[dict[str, Any]], None]


class RemoteRecognitionEngine(RecognitionEngine):
    """Recognition engine whose audio capture happens in the browser."""

    PREFIX = "recognition."

    def __init__(self, send: Send) -> None:
        super().__init__()
        self._send = send
        self._running = False

    def start(self) -> None:
        if self._running:
            raise EngineError("recognition", "invalid-state", "Recognition has already started")
        self._running = True
        self._send(
            {
                "type": "recognition.start",
                "lang": self.lang,
                "continuous": self.continuous,
                "interimResults": self.interim_results,
            }
        )

    def stop(self) -> None:
        self._send({"type": "recognition.stop"})

    def abort(self) -> None:
        self._send({"type": "recognition.abort"})

    def handle(self, message: dict[str, Any]) -> bool:
        """Route one browser event to the handler slots.  Returns False if not ours."""
        msg_type = str(message.get("type", ""))
        if not msg_type.startswith(self.PREFIX):
            return False

        event = msg_type[len(self.PREFIX):]
        if event == "start":
            if self.on_start is not None:
                self.on_start()
        elif event == "result":
            if self.on_result is not None:
                self.on_result(message)
        elif event == "error":
            if self.on_error is not None:
                self.on_error(message)
        elif event == "end":
            self._running = False
            if self.on_end is not None:
                self.on_end()
        else:
            logger.warning("Unknown recognition event: %s", msg_type)
        return True


class RemoteSynthesisEngine(SynthesisEngine):
    """Synthesis engine whose audio output happens in the browser."""

    PREFIX = "synthesis."

    def __init__(self, send: Send) -> None:
        self._send = send
        self._pending: dict[str, Utterance] = {}
        self._voices: list[Voice] = []
        self._speaking = False
        self._paused = False

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def paused(self) -> bool:
        return self._paused

    def speak(self, utterance: Utterance) -> None:
        utterance_id = uuid.uuid4().hex
        self._pending[utterance_id] = utterance
        self._send(
            {
                "type": "synthesis.speak",
                "id": utterance_id,
                "text": utterance.text,
                "lang": utterance.language,
                "rate": utterance.rate,
                "pitch": utterance.pitch,
                "volume": utterance.volume,
                "voice": utterance.voice.name if utterance.voice else None,
            }
        )

    def cancel(self) -> None:
        # Late events for dropped ids are ignored by ``handle``
        self._pending.clear()
        self._speaking = False
        self._paused = False
        self._send({"type": "synthesis.cancel"})

    def pause(self) -> None:
        self._paused = True
        self._send({"type": "synthesis.pause"})

    def resume(self) -> None:
        self._paused = False
        self._send({"type": "synthesis.resume"})

    def get_voices(self) -> list[Voice]:
        return list(self._voices)

    def handle(self, message: dict[str, Any]) -> bool:
        """Route one browser event to the matching utterance.  Returns False if not ours."""
        msg_type = str(message.get("type", ""))
        if not msg_type.startswith(self.PREFIX):
            return False

        event = msg_type[len(self.PREFIX):]
        if event == "voices":
            self._update_voices(message.get("voices") or [])
            return True

        utterance_id = str(message.get("id", ""))
        if event == "start":
            utterance = self._pending.get(utterance_id)
            if utterance is None:
                return True
            self._speaking = True
            if utterance.on_start is not None:
                utterance.on_start()
        elif event in ("end", "error"):
            utterance = self._pending.pop(utterance_id, None)
            if utterance is None:
                return True
            self._speaking = False
            self._paused = False
            if event == "end":
                if utterance.on_end is not None:
                    utterance.on_end()
            elif utterance.on_error is not None:
                utterance.on_error(str(message.get("error") or "synthesis-failed"))
        else:
            logger.warning("Unknown synthesis event: %s", msg_type)
        return True

    def _update_voices(self, raw_voices: list[Any]) -> None:
        voices: list[Voice] = []
        for raw in raw_voices:
            try:
                payload = VoicePayload.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed voice entry: %r", raw)
                continue
            voices.append(Voice(name=payload.name, lang=payload.lang, default=payload.default))
        self._voices = voices
        logger.info("Browser reported %d synthesis voice(s)", len(voices))
