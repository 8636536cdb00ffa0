"""Voice service: owns every live browser-backed voice session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from carevoice.core.exceptions import SessionLimitError, SessionNotFoundError
from carevoice.core.logging import get_logger
from carevoice.models.events import ConfigChangedEvent
from carevoice.models.voice import SessionState
from carevoice.services.dashboard import DashboardVoiceCommands
from carevoice.services.session import VoiceSession
from carevoice.voice.remote import RemoteRecognitionEngine, RemoteSynthesisEngine

if TYPE_CHECKING:
    from carevoice.core.config import Config, VoiceConfig
    from carevoice.core.events import EventBus

logger = get_logger(__name__)

Send = Callable[[dict[str, Any]], None]


@dataclass
class VoiceConnection:
    """A voice session together with the browser engines that drive it."""

    session: VoiceSession
    recognition: RemoteRecognitionEngine
    synthesis: RemoteSynthesisEngine
    dashboard: DashboardVoiceCommands

    def dispatch(self, message: dict[str, Any]) -> bool:
        """Feed one browser engine event to the matching engine."""
        return self.recognition.handle(message) or self.synthesis.handle(message)


class VoiceService:
    """Creates, tracks and tears down voice sessions.

    Each WebSocket client gets its own session with its own engines, so
    sessions never share platform state.  Language changes made through
    config hot-reload are applied to all live sessions.
    """

    def __init__(self, config: Config, event_bus: EventBus) -> None:
        self._config = config
        self._event_bus = event_bus
        self._connections: dict[str, VoiceConnection] = {}
        self._config.add_observer(self._on_config_changed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open_session(
        self,
        send: Send,
        on_error: Optional[Callable[[str], None]] = None,
        on_state_change: Optional[Callable[[SessionState], None]] = None,
        on_command_recognized: Optional[Callable[[str], None]] = None,
    ) -> VoiceConnection:
        """Create a session whose engines talk to a browser through *send*."""
        if len(self._connections) >= self._config.web.max_sessions:
            raise SessionLimitError(
                f"Voice session limit reached ({self._config.web.max_sessions})"
            )

        recognition = RemoteRecognitionEngine(send)
        synthesis = RemoteSynthesisEngine(send)
        session = VoiceSession(
            recognition,
            synthesis,
            self._config.voice,
            self._config.speech,
            on_command_recognized=on_command_recognized,
            on_error=on_error,
            on_state_change=on_state_change,
            event_bus=self._event_bus,
        )
        dashboard = DashboardVoiceCommands(
            session=session,
            on_navigate=lambda section: send({"type": "navigate", "section": section}),
            event_bus=self._event_bus,
        )
        dashboard.install()

        connection = VoiceConnection(session, recognition, synthesis, dashboard)
        self._connections[session.session_id] = connection
        logger.info(
            "Voice session opened: %s (%d active)",
            session.session_id,
            len(self._connections),
        )
        session.open()
        return connection

    def close_session(self, session_id: str) -> None:
        connection = self._connections.pop(session_id, None)
        if connection is None:
            return
        connection.dashboard.uninstall()
        connection.session.destroy()
        logger.info(
            "Voice session closed: %s (%d active)", session_id, len(self._connections)
        )

    def close_all(self) -> None:
        for session_id in list(self._connections):
            self.close_session(session_id)
        self._config.remove_observer(self._on_config_changed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> VoiceSession:
        try:
            return self._connections[session_id].session
        except KeyError:
            raise SessionNotFoundError(f"Voice session '{session_id}' not found") from None

    def list_sessions(self) -> list[VoiceSession]:
        return [connection.session for connection in self._connections.values()]

    @property
    def session_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Config hot-reload
    # ------------------------------------------------------------------

    def _on_config_changed(self, section: str, old_value: Any, new_value: Any) -> None:
        self._event_bus.publish(
            ConfigChangedEvent(section=section, old_value=old_value, new_value=new_value)
        )
        if section != "voice":
            return
        voice: VoiceConfig = new_value
        if voice.language == getattr(old_value, "language", None):
            return
        for connection in self._connections.values():
            connection.session.set_language(voice.language)
