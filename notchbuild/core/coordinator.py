"""Coordinator — merges build events into lifecycle state and progress.

Bridges the listener to the presentation layer:

    BuildEvent -> StateRequest (state machine) + monotonic progress
               -> presenter.update(state, progress)

Runs entirely on the delivery context; never called concurrently.
"""

from __future__ import annotations

import logging
from typing import Protocol

from notchbuild.core.state_machine import BuildStateMachine
from notchbuild.models.events import BuildEvent, EventKind
from notchbuild.models.states import BuildState, StateRequest

logger = logging.getLogger(__name__)

BASELINE_PROGRESS = 0.05
BUILD_PHASE_PROGRESS = 0.2
TESTING_PROGRESS = 0.6

TESTING_PHASE_MARKERS: tuple[str, ...] = ("test", "verify", "surefire")


class Presenter(Protocol):
    """The presentation collaborator.  Must tolerate repeated identical calls."""

    def update(self, state: BuildState, progress: float) -> None: ...


def is_testing_phase(phase: str | None) -> bool:
    """Whether a phase label denotes a test step."""
    if not phase:
        return False
    lowered = phase.lower()
    return any(marker in lowered for marker in TESTING_PHASE_MARKERS)


class Coordinator:
    """Owns session progress and drives the state machine from events.

    Parameters
    ----------
    machine:
        The lifecycle state machine.  The coordinator subscribes to it so
        that state changes not caused by an event (auto-idle) still reach
        the presenter.
    presenter:
        Receives ``(state, progress)`` after every event and state change.
    """

    def __init__(self, machine: BuildStateMachine, presenter: Presenter) -> None:
        self._machine = machine
        self._presenter = presenter
        self._progress = 0.0
        self._last_started_at: float | None = None
        self._subscription = machine.subscribe(self._on_state_change)

    @property
    def state(self) -> BuildState:
        return self._machine.state

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def last_started_at(self) -> float | None:
        """Sender timestamp of the most recent ``started`` event."""
        return self._last_started_at

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def handle_event(self, event: BuildEvent) -> None:
        """Fold one decoded event into state and progress, then present."""
        kind = event.event
        if kind == EventKind.STARTED:
            self._last_started_at = event.timestamp
            self._progress = BASELINE_PROGRESS
            self._machine.send(StateRequest.START_BUILD)
        elif kind == EventKind.PHASE_CHANGED:
            if is_testing_phase(event.phase):
                self._raise_progress(TESTING_PROGRESS)
                self._machine.send(StateRequest.ENTER_TESTING)
            else:
                self._raise_progress(BUILD_PHASE_PROGRESS)
                self._machine.send(StateRequest.START_BUILD)
        elif kind == EventKind.PROGRESS_UPDATED:
            if event.progress is not None:
                self._raise_progress(event.progress)
        elif kind == EventKind.FAILED:
            self._raise_progress(1.0)
            self._machine.send(StateRequest.FAIL)
        elif kind == EventKind.SUCCEEDED:
            self._progress = 1.0
            self._machine.send(StateRequest.SUCCEED)

        self._present(self._machine.state)

    def send(self, request: StateRequest) -> None:
        """Relay an interactive transition request."""
        self._machine.send(request)

    def dismiss(self) -> None:
        """Hide the indicator: zero progress, reset, and present IDLE."""
        self._progress = 0.0
        self._machine.send(StateRequest.RESET)
        self._present(BuildState.IDLE)

    def close(self) -> None:
        """Detach from the state machine."""
        self._subscription.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _raise_progress(self, value: float) -> None:
        self._progress = max(self._progress, value)

    def _on_state_change(self, state: BuildState) -> None:
        self._present(state)

    def _present(self, state: BuildState) -> None:
        self._presenter.update(state, self._progress)
