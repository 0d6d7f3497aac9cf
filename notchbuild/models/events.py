"""Build event wire models — the payload shared by emitter and listener.

Every event is a frozen Pydantic model.  On the wire it travels as one
JSON object per line; absent optional fields are omitted.
"""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """The five build event kinds."""

    STARTED = "started"
    PHASE_CHANGED = "phaseChanged"
    PROGRESS_UPDATED = "progressUpdated"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


class BuildTool(str, Enum):
    """Build tools recognised by the emitter."""

    MAVEN = "maven"
    GRADLE = "gradle"
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    UNKNOWN = "unknown"


class BuildEvent(BaseModel):
    """One build lifecycle event as produced by the wrapper.

    ``timestamp`` is the sender's clock in seconds since the epoch.
    ``progress`` is validated to lie in ``[0, 1]``; anything outside that
    range fails construction (and therefore decoding).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    event: EventKind
    tool: BuildTool
    phase: str | None = None
    timestamp: float
    progress: float | None = Field(default=None, ge=0.0, le=1.0)

    @classmethod
    def now(
        cls,
        event: EventKind,
        tool: BuildTool,
        *,
        phase: str | None = None,
        progress: float | None = None,
    ) -> BuildEvent:
        """Build an event stamped with the current wall-clock time."""
        return cls(
            event=event,
            tool=tool,
            phase=phase,
            timestamp=time.time(),
            progress=progress,
        )

    def to_wire(self) -> bytes:
        """Encode as a newline-terminated UTF-8 JSON line."""
        return self.model_dump_json(exclude_none=True).encode("utf-8") + b"\n"
