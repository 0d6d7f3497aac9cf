"""Build runner — spawns the child build and relays inferred events.

The child's stdout and stderr are each drained by a dedicated reader
thread.  Every line is written through unchanged to the wrapper's own
stream of the same kind and then fed to the shared ``HeuristicParser``.
Events go to an ``EventSink``; a sink must never raise or block for long.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import threading
from collections.abc import Sequence
from typing import BinaryIO, Protocol, TextIO

from notchbuild.emitter.heuristics import HeuristicParser, detect_tool
from notchbuild.models.events import BuildEvent

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127
EXIT_START_FAILED = 1

DEFAULT_SEARCH_PATH = "/usr/bin:/bin:/usr/sbin:/sbin:/usr/local/bin:/opt/homebrew/bin"


class EventSink(Protocol):
    def send(self, event: BuildEvent) -> object: ...


def resolve_command(command: str, search_path: str | None = None) -> str | None:
    """Locate ``command``.  Anything containing a slash is trusted as a path."""
    if "/" in command:
        return command
    if search_path is None:
        search_path = os.environ.get("PATH") or DEFAULT_SEARCH_PATH
    return shutil.which(command, path=search_path)


def normalize_exit_code(returncode: int) -> int:
    """Map ``Popen.returncode`` to a shell-style exit status."""
    if returncode < 0:
        return 128 - returncode
    return returncode


class BuildRunner:
    """Runs one build command and emits its lifecycle events.

    Parameters
    ----------
    sink:
        Receives events (normally an ``EventSender``).
    stdout, stderr:
        Binary streams receiving the child's output.  Default to the
        wrapper's own standard streams.
    errors:
        Text stream for the wrapper's own diagnostics.
    search_path:
        ``PATH``-style string used for command lookup.
    """

    def __init__(
        self,
        sink: EventSink,
        *,
        stdout: BinaryIO | None = None,
        stderr: BinaryIO | None = None,
        errors: TextIO | None = None,
        search_path: str | None = None,
    ) -> None:
        self._sink = sink
        self._stdout = stdout if stdout is not None else sys.stdout.buffer
        self._stderr = stderr if stderr is not None else sys.stderr.buffer
        self._errors = errors if errors is not None else sys.stderr
        self._search_path = search_path

    def run(self, command: str, args: Sequence[str] = ()) -> int:
        """Run ``command args...`` to completion; return the exit code."""
        resolved = resolve_command(command, self._search_path)
        parser = HeuristicParser(detect_tool(resolved or command))

        if resolved is None:
            self._errors.write(f"notch-build: command not found: {command}\n")
            self._errors.flush()
            self._emit([parser.failure_event()])
            return EXIT_NOT_FOUND

        self._emit(parser.startup_events())

        try:
            process = subprocess.Popen(
                [resolved, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            self._errors.write(f"notch-build: failed to start command: {exc}\n")
            self._errors.flush()
            self._emit([parser.failure_event()])
            return EXIT_START_FAILED

        logger.debug("Started %s (pid=%d, tool=%s).", resolved, process.pid, parser.tool.value)

        readers = [
            threading.Thread(
                target=self._pump,
                args=(process.stdout, self._stdout, parser),
                name="notchbuild-stdout",
                daemon=True,
            ),
            threading.Thread(
                target=self._pump,
                args=(process.stderr, self._stderr, parser),
                name="notchbuild-stderr",
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        try:
            returncode = process.wait()
        except KeyboardInterrupt:
            # The child shares our terminal and receives the same SIGINT.
            returncode = process.wait()
        for reader in readers:
            reader.join()

        exit_code = normalize_exit_code(returncode)
        self._emit(parser.finish_events(exit_code))
        return exit_code

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pump(self, source: BinaryIO, target: BinaryIO, parser: HeuristicParser) -> None:
        with source:
            for raw in iter(source.readline, b""):
                target.write(raw)
                target.flush()
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                self._emit(parser.process_line(line))

    def _emit(self, events: list[BuildEvent]) -> None:
        for event in events:
            self._sink.send(event)
