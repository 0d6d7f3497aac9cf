"""notch-build data models — all Pydantic v2, all frozen (immutable)."""

from notchbuild.models.events import BuildEvent, BuildTool, EventKind
from notchbuild.models.states import (
    TRANSITION_RULES,
    BuildState,
    StateRequest,
    TransitionRule,
)

__all__ = [
    # events
    "BuildEvent",
    "BuildTool",
    "EventKind",
    # states
    "BuildState",
    "StateRequest",
    "TransitionRule",
    "TRANSITION_RULES",
]
