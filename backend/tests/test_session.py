from __future__ import annotations

from carevoice.core.config import SpeechConfig, VoiceConfig
from carevoice.core.constants import (
    COMMAND_NOT_RECOGNIZED,
    LISTENING_ACTIVATED,
    LISTENING_DEACTIVATED,
    RECOGNITION_ERROR_MESSAGES,
    RECOGNITION_UNSUPPORTED,
    SYNTHESIS_FAILED,
    VOICE_READY_ANNOUNCEMENT,
    VOICE_SERVICES_UNAVAILABLE,
    RecognitionErrorCode,
)
from carevoice.models.events import (
    CommandRecognizedEvent,
    ListeningChangedEvent,
    VoiceErrorEvent,
)
from carevoice.models.voice import VoiceCommand
from carevoice.services.session import VoiceSession
from tests.conftest import Recorder
from tests.fakes import FakeRecognitionEngine, FakeSynthesisEngine


def collect(event_bus, event_type) -> list:
    events: list = []
    event_bus.subscribe(event_type, events.append)
    return events


class TestListening:
    def test_start_listening_confirms_out_loud(self, session, recognition_engine, synthesis_engine, states):
        session.start_listening()

        assert session.is_listening is True
        assert recognition_engine.start_calls == 1
        assert synthesis_engine.texts == [LISTENING_ACTIVATED]
        assert synthesis_engine.spoken[0].rate == 1.2
        assert states.last.is_listening is True

    def test_stop_listening_confirms_and_stays_stopped(
        self, session, recognition_engine, synthesis_engine
    ):
        session.start_listening()
        session.stop_listening()

        assert session.is_listening is False
        assert recognition_engine.start_calls == 1
        assert synthesis_engine.texts[-1] == LISTENING_DEACTIVATED

    def test_failed_start_is_not_confirmed(self, synthesis_engine, errors):
        session = VoiceSession(
            FakeRecognitionEngine(fail_start=True), synthesis_engine, on_error=errors
        )

        session.start_listening()

        assert session.is_listening is False
        assert LISTENING_ACTIVATED not in synthesis_engine.texts
        assert len(errors.calls) == 1

    def test_listening_events_are_published(self, session, event_bus):
        events = collect(event_bus, ListeningChangedEvent)

        session.start_listening()
        session.stop_listening()

        assert [e.is_listening for e in events] == [True, False]
        assert all(e.session_id == "test-session" for e in events)

    def test_state_is_a_snapshot(self, session):
        state = session.state
        state.is_listening = True

        assert session.is_listening is False


class TestCommands:
    def test_spoken_command_runs_and_is_confirmed(
        self, session, recognition_engine, synthesis_engine, recognized
    ):
        ran: list[str] = []
        session.register_command(VoiceCommand("go home", ["home"], lambda: ran.append("home")))
        session.start_listening()

        recognition_engine.simulate_result("Home")
        synthesis_engine.finish_all()

        assert ran == ["home"]
        assert recognized.calls == ["go home"]
        assert synthesis_engine.texts == [LISTENING_ACTIVATED, "go home activated"]
        assert synthesis_engine.spoken[-1].rate == 1.2
        assert session.last_transcript == "home"

    def test_confirmation_waits_for_speech_started_by_action(self, session, synthesis_engine):
        session.register_command(
            VoiceCommand("show messages", action=lambda: session.read_message("You have 2 messages"))
        )

        session.handle_transcript("show messages")

        assert synthesis_engine.texts == ["You have 2 messages"]
        synthesis_engine.finish_all()
        assert synthesis_engine.texts == ["You have 2 messages", "show messages activated"]

    def test_unrecognized_command_is_reported_and_spoken(
        self, session, recognition_engine, synthesis_engine, errors, event_bus
    ):
        events = collect(event_bus, VoiceErrorEvent)
        session.start_listening()

        recognition_engine.simulate_result("banana")

        message = COMMAND_NOT_RECOGNIZED.format(transcript="banana")
        assert errors.calls == [message]
        assert synthesis_engine.texts[-1] == message
        assert synthesis_engine.spoken[-1].rate == 0.85
        assert [(e.source, e.message) for e in events] == [("command", message)]

    def test_command_event_carries_transcript(self, session, event_bus):
        events = collect(event_bus, CommandRecognizedEvent)
        session.register_command(VoiceCommand("show health", ["my health"]))

        session.handle_transcript("  My Health ")

        assert len(events) == 1
        assert events[0].command == "show health"
        assert events[0].transcript == "my health"
        assert events[0].session_id == "test-session"

    def test_blank_typed_transcript_is_ignored(self, session, errors):
        assert session.handle_transcript("   ") is None
        assert errors.calls == []

    def test_commands_context_manager_scopes_registration(self, session):
        with session.commands([VoiceCommand("go home"), VoiceCommand("show health")]):
            assert {c.command for c in session.get_commands()} == {"go home", "show health"}

        assert session.get_commands() == []


class TestErrors:
    def test_recognition_error_is_spoken(self, session, recognition_engine, synthesis_engine, errors):
        session.start_listening()

        recognition_engine.simulate_error("audio-capture")

        message = RECOGNITION_ERROR_MESSAGES[RecognitionErrorCode.AUDIO_CAPTURE]
        assert errors.calls == [message]
        assert synthesis_engine.texts[-1] == message
        assert session.is_listening is False

    def test_synthesis_failure_is_reported_not_spoken(self, session, synthesis_engine, errors):
        session.speak("Good morning")

        synthesis_engine.fail_current()

        assert errors.calls == [SYNTHESIS_FAILED]
        assert synthesis_engine.texts == ["Good morning"]

    def test_missing_synthesis_engine(self, recognition_engine, errors):
        session = VoiceSession(recognition_engine, None, on_error=errors)

        session.speak("anyone there?")
        session.start_listening()

        assert session.synthesizer is None
        assert errors.calls == [VOICE_SERVICES_UNAVAILABLE]
        assert session.is_listening is True

    def test_missing_recognition_engine_is_spoken(self, synthesis_engine, errors):
        session = VoiceSession(None, synthesis_engine, on_error=errors)

        assert errors.calls == [RECOGNITION_UNSUPPORTED]
        assert synthesis_engine.texts == [RECOGNITION_UNSUPPORTED]
        assert session.recognizer.is_supported is False


class TestSpeaking:
    def test_speaking_state_follows_synthesizer(self, session, synthesis_engine, states):
        session.speak("Hello")
        synthesis_engine.start_current()
        assert session.is_speaking is True

        synthesis_engine.finish_current()
        assert session.is_speaking is False
        assert [s.is_speaking for s in states.calls] == [True, False]

    def test_queued_speech_waits(self, session, synthesis_engine):
        session.speak("first")
        session.speak("second", queued=True)
        session.speak_notification("third", "low", queued=True)

        synthesis_engine.finish_all()

        assert synthesis_engine.texts == ["first", "second", "third"]

    def test_cancel_speech(self, session, synthesis_engine):
        session.speak("first")
        session.speak("second", queued=True)

        session.cancel_speech()
        synthesis_engine.finish_all()

        assert synthesis_engine.texts == ["first"]

    def test_speech_config_sets_defaults(self, recognition_engine, synthesis_engine):
        session = VoiceSession(
            recognition_engine,
            synthesis_engine,
            speech_config=SpeechConfig(rate=0.7, volume=0.5, confirmation_rate=1.0),
        )

        session.speak("slowly")
        session.start_listening()

        assert synthesis_engine.spoken[0].rate == 0.7
        assert synthesis_engine.spoken[0].volume == 0.5
        assert synthesis_engine.spoken[1].rate == 1.0


class TestLifecycle:
    def test_open_auto_starts_and_announces(self, recognition_engine, synthesis_engine):
        session = VoiceSession(
            recognition_engine, synthesis_engine, VoiceConfig(auto_start=True)
        )

        session.open()

        assert session.is_listening is True
        assert synthesis_engine.texts == [VOICE_READY_ANNOUNCEMENT]
        assert synthesis_engine.spoken[0].rate == 0.8

    def test_open_without_auto_start_does_nothing(self, session, recognition_engine, synthesis_engine):
        session.open()

        assert recognition_engine.start_calls == 0
        assert synthesis_engine.spoken == []

    def test_disabled_voice_never_auto_starts(self, recognition_engine, synthesis_engine):
        session = VoiceSession(
            recognition_engine,
            synthesis_engine,
            VoiceConfig(enabled=False, auto_start=True),
        )

        session.open()

        assert recognition_engine.start_calls == 0

    def test_destroy_silences_everything(
        self, session, recognition_engine, synthesis_engine, recognized, errors, states
    ):
        session.register_command(VoiceCommand("go home"))
        session.start_listening()
        states.calls.clear()

        session.destroy()
        recognition_engine.simulate_result("go home")
        session.handle_transcript("go home")
        session.speak("still there?")

        assert session.is_closed is True
        assert recognition_engine.stop_calls == 1
        assert synthesis_engine.cancel_calls >= 2
        assert session.get_commands() == []
        assert recognized.calls == []
        assert errors.calls == []
        assert states.calls == []
        assert "still there?" not in synthesis_engine.texts

    def test_destroy_is_idempotent(self, session, recognition_engine):
        session.start_listening()

        session.destroy()
        session.destroy()

        assert recognition_engine.stop_calls == 1

    def test_set_language_reaches_both_engines(self, session, recognition_engine, synthesis_engine):
        session.set_language("en-GB")
        session.speak("Cheerio")

        assert session.language == "en-GB"
        assert recognition_engine.lang == "en-GB"
        assert synthesis_engine.spoken[0].language == "en-GB"


def test_state_callback_receives_both_flags(recognition_engine, synthesis_engine):
    states = Recorder()
    session = VoiceSession(recognition_engine, synthesis_engine, on_state_change=states)

    session.start_listening()
    synthesis_engine.start_current()

    assert (states.last.is_listening, states.last.is_speaking) == (True, True)
