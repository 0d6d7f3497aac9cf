"""``notchbuild listen`` — run the build indicator in the terminal.

Starts the listener side (delivery queue, state machine, coordinator,
event listener) and shows the Rich HUD until Ctrl+C.
"""

from __future__ import annotations

import logging
import threading

import typer
from rich.console import Console
from rich.logging import RichHandler

from notchbuild.config import NotchSettings
from notchbuild.core.indicator import Indicator
from notchbuild.monitor.renderer import HudRenderer

console = Console()


def listen_cmd(
    host: str = typer.Option(
        None,
        "--host",
        help="Bind address (default: NOTCH_BUILD_HOST or 127.0.0.1).",
    ),
    port: int = typer.Option(
        None,
        "--port",
        "-p",
        help="Bind port (default: NOTCH_BUILD_PORT or 34345).",
    ),
    auto_idle_delay: float = typer.Option(
        None,
        "--auto-idle-delay",
        help="Seconds to show success before returning to idle.",
    ),
) -> None:
    """Listen for build events and show the build indicator.

    Press Ctrl+C to exit.
    """
    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "auto_idle_delay": auto_idle_delay,
        }.items()
        if value is not None
    }
    settings = NotchSettings(**overrides)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    renderer = HudRenderer(console=console)
    indicator = Indicator(renderer, settings)
    if not indicator.start():
        indicator.stop()
        console.print(
            f"[bold red]Could not listen on[/bold red] {settings.host}:{settings.port}"
        )
        raise typer.Exit(code=1)

    bound_host, bound_port = indicator.address or (settings.host, settings.port)
    console.print(
        f"[dim]Listening for build events on {bound_host}:{bound_port}. "
        f"Press Ctrl+C to exit.[/dim]"
    )
    try:
        with renderer.live():
            threading.Event().wait()
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
    finally:
        indicator.stop()
