"""Shared pytest fixtures for Voicegate tests."""

from typing import Any, Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from voicegate.api.app import create_app
from voicegate.api.dependencies import set_debouncer_instance, set_frame_rate_instance
from voicegate.engine import (
    DebouncerOptions,
    ReportedFrameRate,
    VoiceCommand,
    VoiceCommandDebouncer,
)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, milliseconds: float) -> float:
        self.now += milliseconds
        return self.now

    def set(self, milliseconds: float) -> None:
        self.now = milliseconds


class RecordingHandler:
    """Command handler that records every call."""

    def __init__(self, result: bool = True):
        self.result = result
        self.calls: list[tuple[VoiceCommand, Any]] = []

    def __call__(self, command: VoiceCommand, context: Any = None) -> bool:
        self.calls.append((command, context))
        return self.result

    @property
    def texts(self) -> list[str]:
        return [command.text for command, _ in self.calls]


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    """Fake millisecond clock starting at zero."""
    return FakeClock()


@pytest.fixture(scope="function")
def recording_handler() -> RecordingHandler:
    """Handler accepting every command."""
    return RecordingHandler(result=True)


@pytest.fixture(scope="function")
def make_debouncer(
    clock: FakeClock,
) -> Generator[Callable[..., VoiceCommandDebouncer], None, None]:
    """
    Factory building engines driven by the fake clock.

    Keyword arguments are passed to ``DebouncerOptions``; ``fps_provider``
    and ``metrics`` are passed to the engine.
    """
    created: list[VoiceCommandDebouncer] = []

    def factory(
        fps_provider: Optional[Callable[[], Optional[float]]] = None,
        metrics=None,
        **options: Any,
    ) -> VoiceCommandDebouncer:
        debouncer = VoiceCommandDebouncer(
            options=DebouncerOptions(**options),
            fps_provider=fps_provider,
            metrics=metrics,
            clock=clock,
        )
        created.append(debouncer)
        return debouncer

    yield factory

    for debouncer in created:
        debouncer.destroy()


@pytest.fixture(scope="function")
def frame_rate() -> ReportedFrameRate:
    """Frame rate provider with no reading yet."""
    return ReportedFrameRate()


@pytest.fixture(scope="function")
def api_debouncer(frame_rate: ReportedFrameRate) -> VoiceCommandDebouncer:
    """Real-clock engine with short delays for API tests."""
    debouncer = VoiceCommandDebouncer(
        options=DebouncerOptions(
            debounce_delay_ms=100,
            min_command_interval_ms=0,
            adaptive_debouncing_enabled=False,
        ),
        fps_provider=frame_rate,
    )
    debouncer.on_command(lambda command, context: True)
    return debouncer


@pytest.fixture(scope="function")
def test_app(
    api_debouncer: VoiceCommandDebouncer,
    frame_rate: ReportedFrameRate,
) -> Generator[TestClient, None, None]:
    """Create a test client without authentication."""
    set_debouncer_instance(api_debouncer)
    set_frame_rate_instance(frame_rate)
    app = create_app(enable_metrics=False)
    with TestClient(app) as client:
        yield client
    set_debouncer_instance(None)
    set_frame_rate_instance(None)


@pytest.fixture(scope="function")
def test_app_with_auth(
    api_debouncer: VoiceCommandDebouncer,
    frame_rate: ReportedFrameRate,
) -> Generator[TestClient, None, None]:
    """Create a test client with bearer authentication."""
    set_debouncer_instance(api_debouncer)
    set_frame_rate_instance(frame_rate)
    app = create_app(enable_metrics=False, bearer_token="test-token")
    with TestClient(app) as client:
        yield client
    set_debouncer_instance(None)
    set_frame_rate_instance(None)
