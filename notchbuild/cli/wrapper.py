"""``notch-build [--host HOST] [--port PORT] <command> [args...]``

Runs a build command unchanged while relaying its progress to the
indicator.  The surface is a greedy pass-through: once the first
non-flag token is seen, every remaining token belongs to the build
command, including ``--``-prefixed ones.  That is why this entry point
parses its own argv instead of going through Typer.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from notchbuild.bridge.sender import EventSender
from notchbuild.config import NotchSettings
from notchbuild.emitter.runner import EXIT_START_FAILED, BuildRunner

USAGE = "Usage: notch-build [--host HOST] [--port PORT] <command> [args...]"


class WrapperArgs(BaseModel):
    """Parsed wrapper invocation."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    command: str | None = None
    args: list[str] = []


def parse_wrapper_args(argv: Sequence[str], settings: NotchSettings) -> WrapperArgs:
    """Split wrapper flags from the build command.

    ``--host`` takes the next token.  ``--port`` takes the next token only
    when it is an integer; otherwise it is skipped like any unknown flag.
    """
    host, port = settings.host, settings.port
    idx = 0
    while idx < len(argv):
        arg = argv[idx]
        has_value = idx + 1 < len(argv)
        if arg == "--host" and has_value:
            host = argv[idx + 1]
            idx += 2
        elif arg == "--port" and has_value and _is_int(argv[idx + 1]):
            port = int(argv[idx + 1])
            idx += 2
        elif arg.startswith("--"):
            idx += 1
        else:
            return WrapperArgs(
                host=host, port=port, command=arg, args=list(argv[idx + 1:])
            )
    return WrapperArgs(host=host, port=port)


def _is_int(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point.  Returns the process exit code."""
    settings = NotchSettings()
    parsed = parse_wrapper_args(sys.argv[1:] if argv is None else argv, settings)
    if parsed.command is None:
        sys.stderr.write(USAGE + "\n")
        return EXIT_START_FAILED

    sender = EventSender(
        parsed.host, parsed.port, connect_timeout=settings.connect_timeout
    )
    return BuildRunner(sender).run(parsed.command, parsed.args)


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
