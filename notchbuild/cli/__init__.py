"""notch-build CLI.

- ``notch-build`` wraps a build command and relays its progress
  (``notchbuild.cli.wrapper``).
- ``notchbuild`` is the Typer application with ``listen`` and ``emit``.

All indicator-side output uses Rich for formatted terminal display.
"""
