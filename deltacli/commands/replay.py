"""
Replay command: rebuild the restored database from the delta log
"""

import json
from contextlib import closing
from datetime import datetime
from typing import List, Optional

import typer
from rich.table import Table

from deltaengine.core.errors import DeltaError
from deltaengine.log import SqlDeltaLog
from deltaengine.query import project
from deltaengine.replay import replay as replay_deltas

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


def _parse_until(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def replay_command(
    source: str = SOURCE_OPTION,
    target: Optional[str] = TARGET_OPTION,
    log_table: str = LOG_TABLE_OPTION,
    row_schema: str = ROW_SCHEMA_OPTION,
    tables: Optional[List[str]] = typer.Option(
        None, "--table", help="Only replay this table (repeatable)"
    ),
    until: Optional[str] = typer.Option(
        None, "--until", "-u", help="Replay deltas captured at or before this ISO-8601 instant"
    ),
    create_missing: bool = typer.Option(
        False, "--create-missing", help="Create fallback tables instead of skipping"
    ),
    lenient: bool = typer.Option(
        False, "--lenient", help="Ignore UPDATE/DELETE deltas that match no row"
    ),
    preview: bool = typer.Option(
        False, "--preview", help="Reconstruct in memory and print rows, without touching the target"
    ),
    json_output: bool = JSON_OPTION,
):
    """
    Replay the delta log into the restored database.

    The target must be pristine: replay is not idempotent.

    Examples:
        deltactl replay
        deltactl replay --until 2024-05-01T12:00:00+00:00
        deltactl replay --table people --preview
    """
    try:
        settings = load_settings(source, target=target, log_table=log_table, row_schema=row_schema)
        schema = settings.row_schema
        bound = _parse_until(until)
        with source_engine(settings) as engine:
            log = SqlDeltaLog(engine, settings.log_table)
            if preview:
                with closing(log.read(until=bound)) as deltas:
                    state = project(
                        (d for d in deltas if not tables or d.table_name in tables),
                        schema,
                        strict=not lenient,
                    )
            else:
                if not json_output:
                    console.print("[bold]Replaying delta log...[/bold]")
                with target_engine(settings) as restored:
                    result = replay_deltas(
                        log,
                        restored,
                        schema=schema,
                        tables=tables or None,
                        until=bound,
                        strict=not lenient,
                        create_missing=create_missing,
                    )
    except DeltaError as e:
        fail(str(e), json_output, delta_id=getattr(e, "delta_id", None))
    except ValueError as e:
        fail(str(e), json_output)

    if preview:
        rows = {name: [state[name][k] for k in sorted(state[name])] for name in sorted(state)}
        if json_output:
            print(json.dumps({"preview": True, "tables": rows}, indent=2))
            return
        for name, table_rows in rows.items():
            table = Table(title=f"{name} ({len(table_rows)} rows)")
            for column in schema.names:
                table.add_column(column)
            for row in table_rows:
                table.add_row(*[str(row[c]) for c in schema.names])
            console.print(table)
        return

    if json_output:
        print(json.dumps({
            "success": True,
            "run_id": result.run_id,
            "applied": result.applied,
            "skipped": result.skipped,
            "last_delta_id": result.last_delta_id,
            "tables": result.tables,
            "skipped_tables": result.skipped_tables,
        }, indent=2))
        return

    console.print(f"[green]✓ Replayed {result.applied} deltas successfully[/green]")
    console.print(f"  Skipped: [yellow]{result.skipped}[/yellow]")
    console.print(f"  Run id: [cyan]{result.run_id}[/cyan]")

    table = Table(title="Deltas per Table")
    table.add_column("Table", style="green")
    table.add_column("Applied", style="cyan", justify="right")
    table.add_column("Skipped", style="yellow", justify="right")
    for name in sorted(set(result.tables) | set(result.skipped_tables)):
        table.add_row(name, str(result.tables.get(name, 0)), str(result.skipped_tables.get(name, 0)))
    console.print(table)
