"""
Entry point of the thrive-launcher command.

Runs the Typer application and turns anything that escapes it into a short
message and an exit status.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from thrive_launcher.cli.app import app
from thrive_launcher.cli.formatters import format_error_with_suggestions
from thrive_launcher.exceptions import LauncherError

log = logging.getLogger("thrive_launcher")


def main() -> None:
    if os.name == "nt":
        # Game output and status glyphs are not always representable in cp1252
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.reconfigure(encoding="utf-8")
            except (TypeError, AttributeError):
                pass

    console = Console(stderr=True)
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Interrupted, the launcher stopped.[/yellow]")
        sys.exit(130)
    except LauncherError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
