"""Terminal presentation of the build lifecycle."""

from notchbuild.monitor.renderer import HudRenderer

__all__ = ["HudRenderer"]
