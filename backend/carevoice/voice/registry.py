from __future__ import annotations

from typing import Callable, Iterable, Optional

from carevoice.core.constants import COMMAND_FAILED, COMMAND_NOT_RECOGNIZED
from carevoice.core.logging import get_logger
from carevoice.models.voice import VoiceCommand

logger = get_logger(__name__)


class CommandRegistry:
    """Maps spoken phrases and aliases to :class:`VoiceCommand` objects.

    Keys are lower-cased and kept in registration order.  Resolution tries an
    exact key match first, then the first key (in registration order) that
    contains the transcript or is contained in it.
    """

    def __init__(
        self,
        on_recognized: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._commands: dict[str, VoiceCommand] = {}
        self._on_recognized = on_recognized
        self._on_error = on_error

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_command(self, command: VoiceCommand) -> None:
        """Bind *command* under its primary phrase and every alias.

        A key that is already bound is silently rebound to *command*.
        """
        for key in command.keys():
            self._commands[key] = command
        logger.debug(
            "Registered voice command '%s' (%d alias(es))",
            command.command,
            len(command.aliases),
        )

    def register_commands(self, commands: Iterable[VoiceCommand]) -> None:
        for command in commands:
            self.register_command(command)

    def unregister_command(self, phrase: str) -> None:
        """Remove the command owning *phrase*, together with all of its keys.

        Keys since rebound to another command stay with that command.
        """
        command = self._commands.get(phrase.lower())
        if command is None:
            return
        for key in command.keys():
            if self._commands.get(key) is command:
                del self._commands[key]
        logger.debug("Unregistered voice command '%s'", command.command)

    def clear(self) -> None:
        self._commands.clear()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def find(self, transcript: str) -> Optional[VoiceCommand]:
        """Return the command *transcript* resolves to, without running it."""
        text = transcript.lower().strip()
        if not text:
            return None

        command = self._commands.get(text)
        if command is not None:
            return command

        for key, candidate in self._commands.items():
            if key in text or text in key:
                return candidate
        return None

    def resolve(self, transcript: str) -> Optional[VoiceCommand]:
        """Run the command matching *transcript* and report the outcome.

        The action runs first, then ``on_recognized`` receives the primary
        phrase.  With no match, ``on_error`` receives a "not recognized"
        message and nothing runs.
        """
        logger.info("Voice command received: %r", transcript)
        command = self.find(transcript)

        if command is None:
            self._report_error(COMMAND_NOT_RECOGNIZED.format(transcript=transcript))
            return None

        try:
            command.action()
        except Exception:
            logger.exception("Action for voice command '%s' failed", command.command)
            self._report_error(COMMAND_FAILED.format(command=command.command))
            return command

        if self._on_recognized is not None:
            self._on_recognized(command.command)
        return command

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_commands(self) -> list[VoiceCommand]:
        """Return each registered command once, in registration order."""
        unique: dict[str, VoiceCommand] = {}
        for command in self._commands.values():
            unique[command.command] = command
        return list(unique.values())

    def keys(self) -> list[str]:
        return list(self._commands)

    def __len__(self) -> int:
        return len(self.get_commands())

    def __contains__(self, phrase: object) -> bool:
        return isinstance(phrase, str) and phrase.lower() in self._commands

    def _report_error(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)
