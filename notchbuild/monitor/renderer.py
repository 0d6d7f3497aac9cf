"""Rich terminal renderer for the build indicator.

Implements the presentation contract ``update(state, progress)`` with a
one-line Rich panel: a state label and a progress bar.  Inside a
``live()`` block the panel is redrawn in place; otherwise each distinct
update is printed once.

Color scheme
------------
- dim          : IDLE
- yellow       : RUNNING
- cyan         : TESTING
- green        : SUCCESS
- bold red     : FAILED
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from notchbuild.models.states import BuildState

# ---------------------------------------------------------------------------
# State -> Rich style mapping
# ---------------------------------------------------------------------------

_STATE_STYLES: dict[BuildState, str] = {
    BuildState.IDLE: "dim",
    BuildState.RUNNING: "bold yellow",
    BuildState.TESTING: "bold cyan",
    BuildState.SUCCESS: "bold green",
    BuildState.FAILED: "bold red",
}

_STATE_LABELS: dict[BuildState, str] = {
    BuildState.IDLE: "Idle",
    BuildState.RUNNING: "Building",
    BuildState.TESTING: "Testing",
    BuildState.SUCCESS: "Build succeeded",
    BuildState.FAILED: "Build failed",
}


class HudRenderer:
    """Terminal presenter for ``(state, progress)`` updates.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._lock = threading.Lock()
        self._live: Live | None = None
        self._last: tuple[BuildState, float] | None = None

    @property
    def last(self) -> tuple[BuildState, float] | None:
        """The most recently presented ``(state, progress)``."""
        return self._last

    def render(self, state: BuildState, progress: float) -> Panel:
        """Build the panel for one ``(state, progress)`` pair."""
        style = _STATE_STYLES[state]
        grid = Table.grid(expand=True, padding=(0, 1))
        grid.add_column(width=18)
        grid.add_column(ratio=1)
        grid.add_column(width=5, justify="right")

        bar_style = style if state != BuildState.IDLE else "grey23"
        grid.add_row(
            Text(_STATE_LABELS[state], style=style),
            ProgressBar(
                total=1.0,
                completed=progress,
                style="grey23",
                complete_style=bar_style,
                finished_style=bar_style,
            ),
            Text(f"{progress:.0%}", style=style),
        )
        return Panel(grid, title="[bold]notch-build[/bold]", border_style=style)

    def update(self, state: BuildState, progress: float) -> None:
        """Present a new state.  Repeated identical updates are ignored."""
        with self._lock:
            if self._last == (state, progress):
                return
            self._last = (state, progress)
            panel = self.render(state, progress)
            if self._live is not None:
                self._live.update(panel)
            else:
                self.console.print(panel)

    @contextmanager
    def live(self, refresh_per_second: float = 8.0) -> Iterator[HudRenderer]:
        """Redraw the panel in place for the duration of the block."""
        state, progress = self._last or (BuildState.IDLE, 0.0)
        with Live(
            self.render(state, progress),
            console=self.console,
            refresh_per_second=refresh_per_second,
            transient=True,
        ) as live:
            self._live = live
            try:
                yield self
            finally:
                self._live = None
