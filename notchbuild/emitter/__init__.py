"""Wrapper side: tool detection, output heuristics and the build runner."""

from notchbuild.emitter.heuristics import HeuristicParser, detect_tool
from notchbuild.emitter.runner import BuildRunner, resolve_command

__all__ = ["BuildRunner", "HeuristicParser", "detect_tool", "resolve_command"]
