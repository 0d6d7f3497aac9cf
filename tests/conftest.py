"""Shared test fixtures for notch-build."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

import pytest

from notchbuild.core.coordinator import Coordinator
from notchbuild.core.delivery import ScheduledCall
from notchbuild.core.state_machine import BuildStateMachine
from notchbuild.models.events import BuildEvent, BuildTool, EventKind
from notchbuild.models.states import BuildState


class ManualScheduler:
    """Deterministic stand-in for the delivery queue's timer support."""

    def __init__(self) -> None:
        self.now = 0.0
        self.calls: list[ScheduledCall] = []

    def call_later(self, delay: float, fn: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(self.now + delay, fn)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> list[ScheduledCall]:
        return [c for c in self.calls if not c.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for call in sorted(self.pending, key=lambda c: c.due):
            if call.due <= self.now:
                call.run()


class RecordingPresenter:
    """Presenter that records every ``update`` call (thread-safe)."""

    def __init__(self) -> None:
        self.updates: list[tuple[BuildState, float]] = []
        self._cond = threading.Condition()

    def update(self, state: BuildState, progress: float) -> None:
        with self._cond:
            self.updates.append((state, progress))
            self._cond.notify_all()

    @property
    def states(self) -> list[BuildState]:
        return [state for state, _ in self.updates]

    @property
    def last(self) -> tuple[BuildState, float] | None:
        return self.updates[-1] if self.updates else None

    def wait_for(self, predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(predicate, timeout)


class RecordingSink:
    """Event sink that keeps every event it is given."""

    def __init__(self) -> None:
        self.events: list[BuildEvent] = []
        self._lock = threading.Lock()

    def send(self, event: BuildEvent) -> bool:
        with self._lock:
            self.events.append(event)
        return True

    @property
    def kinds(self) -> list[EventKind]:
        return [e.event for e in self.events]


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Provide a manually advanced scheduler."""
    return ManualScheduler()


@pytest.fixture
def machine(scheduler: ManualScheduler) -> BuildStateMachine:
    """Provide a state machine with the default 2-second auto-idle."""
    return BuildStateMachine(scheduler, auto_idle_delay=2.0)


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def coordinator(machine: BuildStateMachine, presenter: RecordingPresenter) -> Coordinator:
    """Provide a Coordinator wired to the test machine and presenter."""
    return Coordinator(machine, presenter)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


# ---------------------------------------------------------------------------
# Event factory — shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., BuildEvent]:
    """Factory fixture: build a BuildEvent with sensible defaults."""

    def _factory(
        event: EventKind = EventKind.STARTED,
        tool: BuildTool = BuildTool.MAVEN,
        **overrides: Any,
    ) -> BuildEvent:
        defaults: dict[str, Any] = {
            "event": event,
            "tool": tool,
            "timestamp": time.time(),
        }
        defaults.update(overrides)
        return BuildEvent(**defaults)

    return _factory
