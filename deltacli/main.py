#!/usr/bin/env python3
"""
deltactl - Delta capture and replay

Main entrypoint for the deltactl command-line tool.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from deltaengine.logging_config import setup_logging

from deltacli.commands import capture, log, replay, snapshot

# Initialize Typer app
app = typer.Typer(
    name="deltactl",
    help="Capture row changes into a delta log and replay them into a restored database",
    add_completion=False,
)

# Console for rich output
console = Console()


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", envvar="DELTA_LOG_LEVEL", help="DEBUG, INFO, WARNING or ERROR"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", envvar="DELTA_LOG_FORMAT", help="json or text"
    ),
):
    setup_logging(log_level, log_format)


# Add command groups
app.add_typer(log.app, name="log", help="Delta log operations")
app.add_typer(snapshot.app, name="snapshot", help="JSON table snapshots")

# Add standalone commands
app.command("install")(capture.install_command)
app.command("uninstall")(capture.uninstall_command)
app.command("status")(capture.status_command)
app.command("replay")(replay.replay_command)


@app.command()
def version():
    """Show version information."""
    from deltacli import __version__
    from deltaengine import __version__ as engine_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]deltactl[/bold]", f"v{__version__}")
    table.add_row("Engine", f"v{engine_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
