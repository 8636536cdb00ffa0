from __future__ import annotations

from typing import Any, Callable

import pytest

from carevoice.core.config import Config, LoggingConfig
from carevoice.core.events import EventBus
from carevoice.services.session import VoiceSession
from tests.fakes import FakeRecognitionEngine, FakeSynthesisEngine


class ScheduledCall:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class ManualScheduler:
    """Stands in for ``loop.call_later``; tests fire delayed calls by hand."""

    def __init__(self) -> None:
        self.calls: list[ScheduledCall] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(delay, callback)
        self.calls.append(call)
        return call

    def fire_all(self) -> None:
        pending, self.calls = self.calls, []
        for call in pending:
            call.fire()


class Recorder:
    """Callable that remembers every argument it was called with."""

    def __init__(self) -> None:
        self.calls: list[Any] = []

    def __call__(self, value: Any = None) -> None:
        self.calls.append(value)

    @property
    def last(self) -> Any:
        return self.calls[-1] if self.calls else None


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    yield
    Config.reset_instance()


@pytest.fixture
def recognition_engine() -> FakeRecognitionEngine:
    return FakeRecognitionEngine()


@pytest.fixture
def synthesis_engine() -> FakeSynthesisEngine:
    return FakeSynthesisEngine()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def errors() -> Recorder:
    return Recorder()


@pytest.fixture
def recognized() -> Recorder:
    return Recorder()


@pytest.fixture
def states() -> Recorder:
    return Recorder()


@pytest.fixture
def session(
    recognition_engine, synthesis_engine, event_bus, errors, recognized, states, scheduler
) -> VoiceSession:
    return VoiceSession(
        recognition_engine,
        synthesis_engine,
        session_id="test-session",
        on_command_recognized=recognized,
        on_error=errors,
        on_state_change=states,
        event_bus=event_bus,
        call_later=scheduler,
    )


@pytest.fixture
def app_config() -> Config:
    return Config(logging=LoggingConfig(log_dir=None))
