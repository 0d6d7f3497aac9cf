"""Build lifecycle models — the five UI states and the requests that move them."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class BuildState(str, Enum):
    """Lifecycle state shown by the indicator."""

    IDLE = "idle"
    RUNNING = "running"
    TESTING = "testing"
    SUCCESS = "success"
    FAILED = "failed"


class StateRequest(str, Enum):
    """Transition requests accepted by the state machine."""

    START_BUILD = "start_build"
    ENTER_TESTING = "enter_testing"
    SUCCEED = "succeed"
    FAIL = "fail"
    RESET = "reset"


class TransitionRule(BaseModel):
    """Guard and outcome for one request.

    ``allowed_from`` of ``None`` means the request is accepted in any state.
    """

    model_config = ConfigDict(frozen=True)

    allowed_from: frozenset[BuildState] | None = None
    target: BuildState
    cancels_auto_idle: bool = False
    schedules_auto_idle: bool = False


# Transition table — enforced by BuildStateMachine.
# No terminal state: SUCCESS and FAILED both lead back to IDLE.
TRANSITION_RULES: dict[StateRequest, TransitionRule] = {
    StateRequest.START_BUILD: TransitionRule(
        target=BuildState.RUNNING,
        cancels_auto_idle=True,
    ),
    StateRequest.ENTER_TESTING: TransitionRule(
        allowed_from=frozenset({BuildState.RUNNING}),
        target=BuildState.TESTING,
    ),
    StateRequest.SUCCEED: TransitionRule(
        allowed_from=frozenset({BuildState.RUNNING, BuildState.TESTING}),
        target=BuildState.SUCCESS,
        schedules_auto_idle=True,
    ),
    StateRequest.FAIL: TransitionRule(
        allowed_from=frozenset({BuildState.RUNNING, BuildState.TESTING}),
        target=BuildState.FAILED,
        cancels_auto_idle=True,
    ),
    StateRequest.RESET: TransitionRule(
        target=BuildState.IDLE,
        cancels_auto_idle=True,
    ),
}
