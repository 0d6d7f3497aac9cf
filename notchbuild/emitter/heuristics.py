"""Build-output heuristics — infer phase and progress from raw log lines.

``HeuristicParser`` owns all per-run heuristic state (progress and the
seen-phase sets) behind one lock, so that stdout and stderr readers can
feed it concurrently.  It only produces events; sending is the caller's
job.
"""

from __future__ import annotations

import threading
from pathlib import PurePath

from notchbuild.models.events import BuildEvent, BuildTool, EventKind

BASELINE_PROGRESS = 0.05
TESTING_PROGRESS = 0.6
PHASE_STEP = 0.05
PHASE_CAP = 0.85
PACKAGE_MANAGER_STEP = 0.02
PACKAGE_MANAGER_CAP = 0.6

TESTING_LINE_MARKERS: tuple[str, ...] = ("test", "surefire", ":test")

MAVEN_PLUGIN_OPEN = "[info] --- "
MAVEN_PLUGIN_CLOSE = " ---"

_PACKAGE_MANAGERS = frozenset({BuildTool.NPM, BuildTool.YARN, BuildTool.PNPM})


def detect_tool(executable: str) -> BuildTool:
    """Map an executable path to a build tool by its base name."""
    name = PurePath(executable).name.lower()
    if "mvn" in name:
        return BuildTool.MAVEN
    if "gradle" in name:
        return BuildTool.GRADLE
    if name == "npm":
        return BuildTool.NPM
    if name == "yarn":
        return BuildTool.YARN
    if "pnpm" in name:
        return BuildTool.PNPM
    return BuildTool.UNKNOWN


def is_testing_line(line: str) -> bool:
    lowered = line.lower()
    return any(marker in lowered for marker in TESTING_LINE_MARKERS)


def extract_maven_plugin(line: str) -> str | None:
    """Return the plugin label from ``[INFO] --- <label> ---``, lower-cased."""
    lowered = line.lower()
    start = lowered.find(MAVEN_PLUGIN_OPEN)
    if start < 0:
        return None
    tail = lowered[start + len(MAVEN_PLUGIN_OPEN):]
    end = tail.find(MAVEN_PLUGIN_CLOSE)
    if end < 0:
        return None
    return tail[:end].strip() or None


def extract_gradle_task(line: str) -> str | None:
    """Return the leading ``:task`` token of a Gradle task line."""
    if not line.startswith(":"):
        return None
    parts = line.split(None, 1)
    return parts[0] if parts else None


class HeuristicParser:
    """Turns build output lines into ``BuildEvent``s for one wrapper run.

    Parameters
    ----------
    tool:
        The detected build tool; selects the per-line heuristic.
    """

    def __init__(self, tool: BuildTool) -> None:
        self.tool = tool
        self._lock = threading.Lock()
        self._progress = BASELINE_PROGRESS
        self._seen_maven_plugins: set[str] = set()
        self._seen_gradle_tasks: set[str] = set()

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    # ------------------------------------------------------------------
    # Session boundaries
    # ------------------------------------------------------------------

    def startup_events(self) -> list[BuildEvent]:
        """``started`` followed by the baseline progress."""
        with self._lock:
            progress = self._progress
        return [
            self._event(EventKind.STARTED),
            self._event(EventKind.PROGRESS_UPDATED, progress=progress),
        ]

    def finish_events(self, exit_code: int) -> list[BuildEvent]:
        """Final ``progressUpdated(1.0)`` and the terminal event."""
        with self._lock:
            self._progress = 1.0
        terminal = EventKind.SUCCEEDED if exit_code == 0 else EventKind.FAILED
        return [
            self._event(EventKind.PROGRESS_UPDATED, progress=1.0),
            self._event(terminal, progress=1.0),
        ]

    def failure_event(self) -> BuildEvent:
        """``failed`` without progress, for launch errors."""
        return self._event(EventKind.FAILED)

    # ------------------------------------------------------------------
    # Per-line heuristic
    # ------------------------------------------------------------------

    def process_line(self, line: str) -> list[BuildEvent]:
        """Apply the heuristics to one output line."""
        with self._lock:
            if is_testing_line(line):
                self._progress = max(self._progress, TESTING_PROGRESS)
                return [
                    self._event(
                        EventKind.PHASE_CHANGED, phase="test", progress=self._progress
                    ),
                    self._event(
                        EventKind.PROGRESS_UPDATED, phase="test", progress=self._progress
                    ),
                ]

            if self.tool == BuildTool.MAVEN:
                return self._labelled_step(
                    extract_maven_plugin(line), self._seen_maven_plugins
                )
            if self.tool == BuildTool.GRADLE:
                return self._labelled_step(
                    extract_gradle_task(line), self._seen_gradle_tasks
                )
            if self.tool in _PACKAGE_MANAGERS:
                # Output volume is the only signal package managers give.
                self._progress = min(
                    self._progress + PACKAGE_MANAGER_STEP, PACKAGE_MANAGER_CAP
                )
                return [
                    self._event(EventKind.PROGRESS_UPDATED, progress=self._progress)
                ]
            return []

    def _labelled_step(self, label: str | None, seen: set[str]) -> list[BuildEvent]:
        # Caller holds the lock.
        if not label or label in seen:
            return []
        seen.add(label)
        self._progress = min(self._progress + PHASE_STEP, PHASE_CAP)
        return [
            self._event(EventKind.PROGRESS_UPDATED, phase=label, progress=self._progress)
        ]

    def _event(
        self,
        kind: EventKind,
        *,
        phase: str | None = None,
        progress: float | None = None,
    ) -> BuildEvent:
        return BuildEvent.now(kind, self.tool, phase=phase, progress=progress)
