"""Continuous speech recognition on top of an injected recognition engine."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import ValidationError

from carevoice.core.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_RESTART_BACKOFF_SECONDS,
    DEFAULT_RESTART_MAX_ATTEMPTS,
    DEFAULT_RESTART_MAX_BACKOFF_SECONDS,
    GENERIC_RECOGNITION_ERROR,
    RECOGNITION_ERROR_MESSAGES,
    RECOGNITION_RETRIES_EXHAUSTED,
    RECOGNITION_START_FAILED,
    RECOGNITION_UNAVAILABLE,
    RECOGNITION_UNSUPPORTED,
    RecognitionErrorCode,
)
from carevoice.core.logging import get_logger
from carevoice.models.engine import RecognitionErrorPayload, RecognitionEventPayload
from carevoice.models.voice import RecognitionResult

if TYPE_CHECKING:
    from carevoice.core.config import RestartConfig
    from carevoice.voice.engines import RecognitionEngine

logger = get_logger(__name__)

CallLater = Callable[[float, Callable[[], None]], Any]


@dataclass(frozen=True)
class RestartPolicy:
    """Bounded retry policy for continuous-mode auto-restart.

    Only restarts that follow a failed recognition cycle count as attempts.
    ``max_attempts=None`` retries forever.
    """

    max_attempts: Optional[int] = DEFAULT_RESTART_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_RESTART_BACKOFF_SECONDS
    max_backoff_seconds: float = DEFAULT_RESTART_MAX_BACKOFF_SECONDS

    @classmethod
    def from_config(cls, config: RestartConfig) -> RestartPolicy:
        return cls(
            max_attempts=config.max_attempts,
            backoff_seconds=config.backoff_seconds,
            max_backoff_seconds=config.max_backoff_seconds,
        )

    def exhausted(self, attempt: int) -> bool:
        return self.max_attempts is not None and attempt > self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff for the *attempt*-th consecutive failed cycle."""
        if attempt <= 0 or self.backoff_seconds <= 0:
            return 0.0
        return min(self.backoff_seconds * 2 ** (attempt - 1), self.max_backoff_seconds)


def _loop_call_later(delay: float, callback: Callable[[], None]) -> Any:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("No running event loop; restarting recognition without delay")
        callback()
        return None
    return loop.call_later(delay, callback)


class SpeechRecognizer:
    """Listens for spoken commands and forwards final transcripts.

    All engine events are decoded here, so consumers only ever see
    :class:`RecognitionResult` objects and human-readable error strings.
    Nothing raised by the engine escapes: failures go to ``on_error``.
    """

    def __init__(
        self,
        engine: Optional[RecognitionEngine],
        *,
        language: str = DEFAULT_LANGUAGE,
        continuous: bool = True,
        restart_policy: Optional[RestartPolicy] = None,
        on_result: Optional[Callable[[RecognitionResult], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_listening_change: Optional[Callable[[bool], None]] = None,
        call_later: Optional[CallLater] = None,
    ) -> None:
        self._engine = engine
        self._language = language
        self._continuous = continuous
        self._policy = restart_policy or RestartPolicy()
        self._on_result = on_result
        self._on_error = on_error
        self._on_listening_change = on_listening_change
        self._call_later = call_later or _loop_call_later

        self._listening = False
        self._stopped_by_user = False
        self._cycle_failed = False
        self._restart_attempts = 0
        self._restart_handle: Any = None
        self._destroyed = False

        if engine is None:
            logger.warning("No speech recognition engine available")
            self._report(RECOGNITION_UNSUPPORTED)
            return

        engine.continuous = continuous
        engine.interim_results = False
        engine.lang = language
        engine.on_start = self._handle_start
        engine.on_result = self._handle_result
        engine.on_error = self._handle_error
        engine.on_end = self._handle_end

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin listening.  No-op while already listening."""
        if self._engine is None:
            self._report(RECOGNITION_UNAVAILABLE)
            return

        if self._listening:
            return

        self._stopped_by_user = False
        self._restart_attempts = 0
        self._cycle_failed = False
        self._cancel_pending_restart()

        try:
            self._engine.start()
        except Exception as exc:
            logger.exception("Failed to start voice navigation: %s", exc)
            self._report(RECOGNITION_START_FAILED)
            return

        self._set_listening(True)

    def stop(self) -> None:
        """Stop listening.  The engine's following "end" does not auto-restart."""
        self._halt(abort=False)

    def abort(self) -> None:
        """Stop listening and discard audio captured so far."""
        self._halt(abort=True)

    def set_language(self, language: str) -> None:
        """Switch recognition language; applies from the next capture cycle."""
        self._language = language
        if self._engine is not None:
            self._engine.lang = language

    def destroy(self) -> None:
        """Stop listening and detach from the engine for good."""
        if self._destroyed:
            return
        self._halt(abort=False)
        self._destroyed = True
        if self._engine is not None:
            self._engine.detach()
        self._engine = None
        self._listening = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def is_supported(self) -> bool:
        return self._engine is not None

    @property
    def language(self) -> str:
        return self._language

    @property
    def continuous(self) -> bool:
        return self._continuous

    @property
    def restart_attempts(self) -> int:
        return self._restart_attempts

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _handle_start(self) -> None:
        if self._destroyed:
            return
        self._set_listening(True)

    def _handle_result(self, payload: dict[str, Any]) -> None:
        if self._destroyed:
            return

        try:
            event = RecognitionEventPayload.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Discarding malformed recognition result: %s", exc)
            return

        if not event.results or not event.results[-1].alternatives:
            return

        latest = event.results[-1]
        top = latest.alternatives[0]
        result = RecognitionResult(
            transcript=top.transcript.lower().strip(),
            is_final=latest.is_final,
            confidence=top.confidence,
        )

        # Any result means the engine is healthy again
        self._restart_attempts = 0

        if not result.is_final or not result.transcript:
            logger.debug("Ignoring interim or empty result: %r", result.transcript)
            return

        logger.debug(
            "Transcript received: %r (confidence %.2f)", result.transcript, result.confidence
        )
        if self._on_result is not None:
            self._on_result(result)

    def _handle_error(self, payload: dict[str, Any] | str) -> None:
        if self._destroyed:
            return

        if isinstance(payload, str):
            payload = {"error": payload}
        try:
            error = RecognitionErrorPayload.model_validate(payload)
        except ValidationError:
            error = RecognitionErrorPayload()

        code = RecognitionErrorCode.from_code(error.error)
        self._set_listening(False)

        if code is RecognitionErrorCode.ABORTED and self._stopped_by_user:
            logger.debug("Recognition aborted on request")
            return

        logger.error("Voice navigation error: %s (%s)", code.value, error.message or "-")
        self._cycle_failed = True
        self._report(RECOGNITION_ERROR_MESSAGES.get(code, GENERIC_RECOGNITION_ERROR))

    def _handle_end(self) -> None:
        if self._destroyed:
            return

        self._set_listening(False)
        failed, self._cycle_failed = self._cycle_failed, False

        if not self._continuous or self._stopped_by_user:
            return

        self._restart_attempts = self._restart_attempts + 1 if failed else 0
        if self._policy.exhausted(self._restart_attempts):
            logger.warning(
                "Giving up on voice navigation after %d failed restarts",
                self._restart_attempts - 1,
            )
            self._report(RECOGNITION_RETRIES_EXHAUSTED)
            return

        delay = self._policy.delay_for(self._restart_attempts)
        if delay <= 0:
            self._restart()
        else:
            logger.info(
                "Restarting voice navigation in %.1fs (attempt %d)",
                delay,
                self._restart_attempts,
            )
            self._restart_handle = self._call_later(delay, self._restart)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _restart(self) -> None:
        self._restart_handle = None
        if self._destroyed or self._stopped_by_user or self._engine is None:
            return
        if self._listening:
            return

        try:
            self._engine.start()
        except Exception as exc:
            logger.error("Failed to restart voice navigation: %s", exc)
            return

        self._set_listening(True)

    def _halt(self, abort: bool) -> None:
        self._stopped_by_user = True
        self._cancel_pending_restart()

        if self._engine is None or not self._listening:
            return

        # Clear the flag first: engines may fire "end" synchronously
        self._set_listening(False)
        try:
            if abort:
                self._engine.abort()
            else:
                self._engine.stop()
        except Exception as exc:
            logger.error("Failed to stop voice navigation: %s", exc)

    def _cancel_pending_restart(self) -> None:
        handle, self._restart_handle = self._restart_handle, None
        if handle is not None and hasattr(handle, "cancel"):
            handle.cancel()

    def _set_listening(self, value: bool) -> None:
        if self._listening == value:
            return
        self._listening = value
        if self._on_listening_change is not None:
            self._on_listening_change(value)

    def _report(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)
