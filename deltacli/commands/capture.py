"""
Capture commands: install, uninstall, status
"""

import json
from typing import List, Optional

import typer
from rich.table import Table

from deltaengine.capture import install, installed_tables, uninstall
from deltaengine.core.errors import DeltaError

from ._common import (
    JSON_OPTION,
    LOG_TABLE_OPTION,
    SOURCE_OPTION,
    console,
    fail,
    load_settings,
    source_engine,
)


def install_command(
    source: str = SOURCE_OPTION,
    tables: Optional[List[str]] = typer.Option(
        None, "--table", help="Table to track (repeatable, default: all tables)"
    ),
    log_table: str = LOG_TABLE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Create the delta log table and install capture hooks.

    Examples:
        deltactl install
        deltactl install --table people --table orders
    """
    try:
        settings = load_settings(source, log_table=log_table)
        with source_engine(settings) as engine:
            done = install(engine, tables=tables or None, log_table=settings.log_table)
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output, table=getattr(e, "table", None))

    if json_output:
        print(json.dumps({"installed": done, "log_table": settings.log_table}))
        return
    for name in done:
        console.print(f"[green]✓[/green] Capture hook added to [cyan]{name}[/cyan]")
    console.print(f"\n[bold]Tables instrumented:[/bold] {len(done)}")


def uninstall_command(
    source: str = SOURCE_OPTION,
    tables: Optional[List[str]] = typer.Option(
        None, "--table", help="Table to clean up (repeatable, default: all instrumented)"
    ),
    json_output: bool = JSON_OPTION,
):
    """
    Remove capture hooks and their generated functions.

    The delta log table and its contents are kept.
    """
    try:
        with source_engine(load_settings(source)) as engine:
            removed = uninstall(engine, tables=tables or None)
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output, table=getattr(e, "table", None))

    if json_output:
        print(json.dumps({"removed": removed}))
        return
    for name in removed:
        console.print(f"[green]✓[/green] Capture hook removed from [cyan]{name}[/cyan]")
    console.print(f"\n[bold]Tables cleaned up:[/bold] {len(removed)}")


def status_command(
    source: str = SOURCE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """List tables carrying a capture hook."""
    try:
        with source_engine(load_settings(source)) as engine:
            names = installed_tables(engine)
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"tables": names, "count": len(names)}))
        return
    if not names:
        console.print("[yellow]No tables are instrumented[/yellow]")
        return
    table = Table(title="Instrumented Tables")
    table.add_column("Table", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)
