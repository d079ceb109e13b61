"""
Snapshot commands: export, import, copy
"""

import json
from typing import List, Optional

import typer
from rich.table import Table

from deltaengine.core.errors import DeltaError
from deltaengine.snapshot import backup_and_restore, export_table, import_table

from ._common import (
    JSON_OPTION,
    LOG_TABLE_OPTION,
    ROW_SCHEMA_OPTION,
    SOURCE_OPTION,
    TARGET_OPTION,
    console,
    fail,
    load_settings,
    source_engine,
    target_engine,
)

app = typer.Typer()


@app.command("export")
def export_command(
    table_name: str = typer.Argument(..., help="Table to export"),
    path: str = typer.Argument(..., help="Output JSON file"),
    source: str = SOURCE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Write every row of a table to a JSON file.

    Examples:
        deltactl snapshot export people backups/people.json
    """
    try:
        with source_engine(load_settings(source)) as engine:
            count = export_table(engine, table_name, path)
    except (DeltaError, ValueError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"table": table_name, "path": path, "rows": count}))
        return
    console.print(f"[green]✓ Exported {count} rows from {table_name} to {path}[/green]")


@app.command("import")
def import_command(
    table_name: str = typer.Argument(..., help="Table to load into"),
    path: str = typer.Argument(..., help="JSON file written by snapshot export"),
    source: str = SOURCE_OPTION,
    target: Optional[str] = TARGET_OPTION,
    row_schema: str = ROW_SCHEMA_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Load a JSON snapshot into the restored database.

    The table is created with the row schema when it does not exist.
    """
    try:
        settings = load_settings(source, target=target, row_schema=row_schema)
        with target_engine(settings) as engine:
            count = import_table(engine, table_name, path, schema=settings.row_schema)
    except (DeltaError, ValueError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"table": table_name, "path": path, "rows": count}))
        return
    console.print(f"[green]✓ Imported {count} rows into {table_name}[/green]")


@app.command("copy")
def copy_command(
    directory: str = typer.Argument(..., help="Directory for the intermediate JSON files"),
    source: str = SOURCE_OPTION,
    target: Optional[str] = TARGET_OPTION,
    log_table: str = LOG_TABLE_OPTION,
    row_schema: str = ROW_SCHEMA_OPTION,
    tables: Optional[List[str]] = typer.Option(
        None, "--table", help="Table to copy (repeatable, default: all but the delta log)"
    ),
    json_output: bool = JSON_OPTION,
):
    """
    Back up source tables to JSON and restore them into the restored database.

    Examples:
        deltactl snapshot copy backups/
    """
    try:
        settings = load_settings(source, target=target, log_table=log_table, row_schema=row_schema)
        with source_engine(settings) as engine, target_engine(settings) as restored:
            copied = backup_and_restore(
                engine,
                restored,
                directory,
                schema=settings.row_schema,
                tables=tables or None,
                log_table=settings.log_table,
            )
    except (DeltaError, ValueError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"tables": copied, "directory": directory}, indent=2))
        return
    table = Table(title="Rows Copied")
    table.add_column("Table", style="green")
    table.add_column("Rows", style="cyan", justify="right")
    for name, count in sorted(copied.items()):
        table.add_row(name, str(count))
    console.print(table)
