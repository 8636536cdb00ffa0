"""Voice commands for the primary-user (elderly) dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from carevoice.core.constants import DashboardSection, NotificationPriority
from carevoice.core.logging import get_logger
from carevoice.models.events import EmergencyRequestedEvent, SectionChangedEvent
from carevoice.models.voice import VoiceCommand

if TYPE_CHECKING:
    from carevoice.core.events import EventBus
    from carevoice.services.session import VoiceSession

logger = get_logger(__name__)

SECTION_NAMES: dict[DashboardSection, str] = {
    DashboardSection.HOME: "Home",
    DashboardSection.HEALTH: "Health Metrics",
    DashboardSection.MEDICATIONS: "Medications",
    DashboardSection.APPOINTMENTS: "Appointments",
    DashboardSection.MESSAGES: "Family Messages",
    DashboardSection.SETTINGS: "Settings",
}


@dataclass(frozen=True)
class CommandDefinition:
    """Static description of a dashboard command; bound to an action later."""

    command: str
    aliases: tuple[str, ...]
    description: str
    section: Optional[DashboardSection] = None
    announcement: str = ""


NAVIGATION_COMMANDS: tuple[CommandDefinition, ...] = (
    CommandDefinition(
        "go home",
        ("home", "go to home", "show home"),
        "Navigate to home screen",
        DashboardSection.HOME,
        "Showing home screen",
    ),
    CommandDefinition(
        "show health",
        ("health", "go to health", "view health", "my health"),
        "View health metrics",
        DashboardSection.HEALTH,
        "Showing health metrics",
    ),
    CommandDefinition(
        "show medications",
        ("medications", "medicine", "pills", "my medications"),
        "View medication schedule",
        DashboardSection.MEDICATIONS,
        "Showing medications",
    ),
    CommandDefinition(
        "show appointments",
        ("appointments", "schedule", "my appointments", "doctor appointments"),
        "View appointment schedule",
        DashboardSection.APPOINTMENTS,
        "Showing appointments",
    ),
    CommandDefinition(
        "show messages",
        ("messages", "family messages", "my messages"),
        "View family messages",
        DashboardSection.MESSAGES,
        "Showing family messages",
    ),
)

EMERGENCY_COMMAND = CommandDefinition(
    "emergency",
    ("help", "call for help", "i need help", "emergency alert"),
    "Trigger emergency alert",
    announcement="Emergency alert activated",
)

HELP_COMMAND = CommandDefinition(
    "help",
    ("what can i say", "voice commands", "commands"),
    "List available voice commands",
)

DASHBOARD_COMMANDS: tuple[CommandDefinition, ...] = NAVIGATION_COMMANDS + (
    EMERGENCY_COMMAND,
    HELP_COMMAND,
)


def dashboard_command_catalogue() -> list[dict[str, object]]:
    """Describe the dashboard commands for help screens and the HTTP API."""
    return [
        {
            "command": definition.command,
            "aliases": list(definition.aliases),
            "description": definition.description,
        }
        for definition in DASHBOARD_COMMANDS
    ]


@dataclass
class DashboardVoiceCommands:
    """Binds the dashboard command set to one :class:`VoiceSession`.

    Registration order matters: ``emergency`` comes before ``help``, so the
    spoken word "help" (an alias of ``emergency``) is rebound to the ``help``
    command when the latter registers, exactly as on the dashboard itself.
    """

    session: VoiceSession
    on_navigate: Optional[Callable[[str], None]] = None
    on_emergency: Optional[Callable[[], None]] = None
    event_bus: Optional[EventBus] = None
    section: DashboardSection = DashboardSection.HOME
    _commands: list[VoiceCommand] = field(default_factory=list, init=False)

    def build_commands(self) -> list[VoiceCommand]:
        commands = [
            VoiceCommand(
                command=definition.command,
                aliases=list(definition.aliases),
                action=self._navigation_action(definition),
                description=definition.description,
            )
            for definition in NAVIGATION_COMMANDS
        ]
        commands.append(
            VoiceCommand(
                command=EMERGENCY_COMMAND.command,
                aliases=list(EMERGENCY_COMMAND.aliases),
                action=self.trigger_emergency,
                description=EMERGENCY_COMMAND.description,
            )
        )
        commands.append(
            VoiceCommand(
                command=HELP_COMMAND.command,
                aliases=list(HELP_COMMAND.aliases),
                action=self.describe_commands,
                description=HELP_COMMAND.description,
            )
        )
        return commands

    def install(self) -> list[VoiceCommand]:
        self._commands = self.build_commands()
        for command in self._commands:
            self.session.register_command(command)
        return self._commands

    def uninstall(self) -> None:
        for command in self._commands:
            self.session.unregister_command(command.command)
        self._commands = []

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def navigate(self, section: DashboardSection | str) -> None:
        """Switch the visible section and announce it."""
        new_section = DashboardSection(section)
        old_section, self.section = self.section, new_section

        if self.on_navigate is not None:
            self.on_navigate(new_section.value)
        if self.event_bus is not None:
            self.event_bus.publish(
                SectionChangedEvent(
                    session_id=self.session.session_id,
                    old_section=old_section.value,
                    new_section=new_section.value,
                )
            )

        if new_section is not DashboardSection.HOME:
            self.session.speak_instruction(
                f"Now viewing {SECTION_NAMES[new_section]}", queued=True
            )

    def trigger_emergency(self) -> None:
        logger.warning("Emergency requested by voice in session %s", self.session.session_id)
        if self.on_emergency is not None:
            self.on_emergency()
        if self.event_bus is not None:
            self.event_bus.publish(
                EmergencyRequestedEvent(
                    session_id=self.session.session_id,
                    transcript=self.session.last_transcript,
                )
            )
        self.session.speak_notification(
            EMERGENCY_COMMAND.announcement, NotificationPriority.CRITICAL
        )

    def describe_commands(self) -> None:
        phrases = [definition.command for definition in NAVIGATION_COMMANDS]
        self.session.speak_instruction(
            "You can say: "
            + ", ".join(phrases)
            + ", or emergency for help."
        )

    def _navigation_action(self, definition: CommandDefinition) -> Callable[[], None]:
        def action() -> None:
            self.session.speak_notification(definition.announcement)
            self.navigate(definition.section)

        return action
