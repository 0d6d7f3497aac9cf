"""Main Typer application — the indicator-side commands.

Entry point: ``notchbuild`` (configured via pyproject.toml scripts).
The build wrapper itself is the separate ``notch-build`` entry point
(see ``notchbuild.cli.wrapper``).
"""

from __future__ import annotations

import typer

from notchbuild.cli.commands.emit_cmd import emit_cmd
from notchbuild.cli.commands.listen_cmd import listen_cmd

app = typer.Typer(
    name="notchbuild",
    help="notch-build: relay build progress to a terminal build indicator.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="listen", help="Listen for build events and show the indicator.")(listen_cmd)
app.command(name="emit", help="Send a single build event to the listener.")(emit_cmd)
