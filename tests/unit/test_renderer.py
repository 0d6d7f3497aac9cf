"""Unit tests for the HudRenderer.

Tests Rich panel output, state color mapping and update de-duplication.
"""

from __future__ import annotations

import io

import pytest
from rich.console import Console
from rich.panel import Panel

from notchbuild.models.states import BuildState
from notchbuild.monitor.renderer import _STATE_LABELS, _STATE_STYLES, HudRenderer


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=80, force_terminal=False, color_system=None)


@pytest.fixture
def renderer(console) -> HudRenderer:
    return HudRenderer(console=console)


def _output(console: Console) -> str:
    return console.file.getvalue()


class TestStyleMappings:
    def test_every_state_has_style_and_label(self):
        for state in BuildState:
            assert state in _STATE_STYLES
            assert state in _STATE_LABELS


class TestRender:
    def test_render_returns_panel(self, renderer):
        assert isinstance(renderer.render(BuildState.RUNNING, 0.3), Panel)

    @pytest.mark.parametrize(
        ("state", "progress", "text"),
        [
            (BuildState.IDLE, 0.0, "Idle"),
            (BuildState.RUNNING, 0.05, "Building"),
            (BuildState.TESTING, 0.6, "Testing"),
            (BuildState.SUCCESS, 1.0, "Build succeeded"),
            (BuildState.FAILED, 1.0, "Build failed"),
        ],
    )
    def test_label_and_percentage(self, renderer, console, state, progress, text):
        console.print(renderer.render(state, progress))
        out = _output(console)
        assert text in out
        assert f"{progress:.0%}" in out
        assert "notch-build" in out


class TestUpdate:
    def test_update_prints_and_records(self, renderer, console):
        renderer.update(BuildState.RUNNING, 0.2)
        assert renderer.last == (BuildState.RUNNING, 0.2)
        assert "Building" in _output(console)

    def test_identical_updates_are_ignored(self, renderer, console):
        renderer.update(BuildState.TESTING, 0.6)
        first = _output(console)
        renderer.update(BuildState.TESTING, 0.6)
        assert _output(console) == first

    def test_distinct_updates_are_printed(self, renderer, console):
        renderer.update(BuildState.RUNNING, 0.2)
        renderer.update(BuildState.RUNNING, 0.25)
        assert _output(console).count("Building") == 2

    def test_live_block_updates_in_place(self, renderer, console):
        with renderer.live():
            renderer.update(BuildState.SUCCESS, 1.0)
        assert renderer.last == (BuildState.SUCCESS, 1.0)
        # Outside the live block updates print again.
        renderer.update(BuildState.IDLE, 0.0)
        assert "Idle" in _output(console)
