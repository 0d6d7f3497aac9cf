"""``notchbuild emit EVENT`` — send one build event to a running listener.

Handy for driving the indicator by hand, e.g.::

    notchbuild emit started --tool maven
    notchbuild emit phaseChanged --phase test
    notchbuild emit succeeded --progress 1.0
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console

from notchbuild.bridge.sender import EventSender
from notchbuild.config import NotchSettings
from notchbuild.models.events import BuildEvent, BuildTool, EventKind

console = Console()


def emit_cmd(
    event: EventKind = typer.Argument(
        ...,
        help="Event kind to send.",
    ),
    tool: BuildTool = typer.Option(
        BuildTool.UNKNOWN,
        "--tool",
        "-t",
        help="Build tool reported with the event.",
    ),
    phase: str = typer.Option(
        None,
        "--phase",
        help="Optional phase label.",
    ),
    progress: float = typer.Option(
        None,
        "--progress",
        help="Optional progress fraction in [0, 1].",
    ),
    host: str = typer.Option(
        None,
        "--host",
        help="Listener address (default: NOTCH_BUILD_HOST or 127.0.0.1).",
    ),
    port: int = typer.Option(
        None,
        "--port",
        "-p",
        help="Listener port (default: NOTCH_BUILD_PORT or 34345).",
    ),
) -> None:
    """Send a single build event to the listener."""
    settings = NotchSettings()
    try:
        payload = BuildEvent.now(event, tool, phase=phase, progress=progress)
    except ValidationError as exc:
        console.print(f"[bold red]Invalid event:[/bold red] {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2)

    sender = EventSender(
        host or settings.host,
        port if port is not None else settings.port,
        connect_timeout=settings.connect_timeout,
    )
    if not sender.send(payload):
        console.print(
            f"[yellow]No listener reachable at {sender.address[0]}:{sender.address[1]}; "
            f"event dropped.[/yellow]"
        )
        raise typer.Exit(code=1)
    console.print(f"[green]Sent[/green] {payload.event.value} ({payload.tool.value})")
