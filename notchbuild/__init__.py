"""notch-build: relay command-line build progress to a passive indicator.

- CLI wrapper (``notch-build``) runs Maven/Gradle/npm/Yarn/pnpm unchanged
  and infers phase and progress from its output
- Newline-delimited JSON events over a loopback TCP channel, best-effort
- Listener side folds events into a five-state lifecycle with monotonic
  progress and a timed return to idle after success
"""

__version__ = "0.1.0"
__description__ = "Relay command-line build progress to a passive build indicator"

from notchbuild.core.coordinator import Coordinator
from notchbuild.core.indicator import Indicator
from notchbuild.core.state_machine import BuildStateMachine
from notchbuild.models.events import BuildEvent, BuildTool, EventKind
from notchbuild.models.states import BuildState, StateRequest

__all__ = [
    "BuildEvent",
    "BuildState",
    "BuildStateMachine",
    "BuildTool",
    "Coordinator",
    "EventKind",
    "Indicator",
    "StateRequest",
    "__version__",
]
