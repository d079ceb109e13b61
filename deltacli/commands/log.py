"""
Delta log commands: tail, inspect, history, drop
"""

import json
from contextlib import contextmanager
from typing import Iterator, List, Optional

import typer
from rich.syntax import Syntax
from rich.table import Table

from deltaengine.core.errors import DeltaError
from deltaengine.log import SqlDeltaLog
from deltaengine.query import row_history, summarize

from ._common import (
    JSON_OPTION,
    LOG_TABLE_OPTION,
    ROW_SCHEMA_OPTION,
    SOURCE_OPTION,
    console,
    fail,
    load_settings,
    parse_key,
    source_engine,
)

app = typer.Typer()


@contextmanager
def open_log(source: str, log_table: str) -> Iterator[SqlDeltaLog]:
    settings = load_settings(source, log_table=log_table)
    with source_engine(settings) as engine:
        log = SqlDeltaLog(engine, settings.log_table)
        if not log.exists():
            raise DeltaError(f"delta log table {settings.log_table} does not exist (run deltactl install)")
        yield log


def _delta_table(title: str, deltas) -> Table:
    table = Table(title=title)
    table.add_column("Id", style="cyan", justify="right")
    table.add_column("Action", style="green")
    table.add_column("Table", style="yellow")
    table.add_column("Timestamp", style="dim")
    for d in deltas:
        table.add_row(str(d.id), d.action, d.table_name, d.timestamp.isoformat() if d.timestamp else "N/A")
    return table


@app.command()
def tail(
    source: str = SOURCE_OPTION,
    log_table: str = LOG_TABLE_OPTION,
    lines: int = typer.Option(10, "--lines", "-n", help="Number of deltas to show"),
    json_output: bool = JSON_OPTION,
):
    """
    Show the most recent deltas in replay order.

    Examples:
        deltactl log tail
        deltactl log tail --lines 50 --json
    """
    try:
        with open_log(source, log_table) as log:
            deltas = list(log.read())
            total = len(deltas)
        deltas = deltas[-lines:] if lines > 0 else []
        records = [d.to_dict() for d in deltas]
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"deltas": records, "count": len(records)}, indent=2))
        return
    if not deltas:
        console.print("[yellow]Delta log is empty[/yellow]")
        return
    console.print(_delta_table(f"Delta Log: {log_table}", deltas))
    console.print(f"\n[bold]Total deltas:[/bold] {total}")


@app.command()
def inspect(
    source: str = SOURCE_OPTION,
    log_table: str = LOG_TABLE_OPTION,
    table_name: Optional[str] = typer.Option(None, "--table", help="Filter by table"),
    action: Optional[str] = typer.Option(None, "--action", "-a", help="Filter by action"),
    show_payload: bool = typer.Option(False, "--payload", "-p", help="Show decoded row snapshots"),
    json_output: bool = JSON_OPTION,
):
    """
    Inspect deltas with filters.

    Examples:
        deltactl log inspect --table people
        deltactl log inspect --action DELETE --payload
    """
    try:
        with open_log(source, log_table) as log:
            deltas = [
                d for d in log.read(table_name=table_name)
                if action is None or d.action == action.upper()
            ]
        records = [d.to_dict(decoded=show_payload) for d in deltas]
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        if not show_payload:
            for rec in records:
                rec["old_data"] = "<hidden>" if rec["old_data"] is not None else None
                rec["new_data"] = "<hidden>" if rec["new_data"] is not None else None
        print(json.dumps({"deltas": records, "count": len(records), "summary": summarize(deltas)}, indent=2))
        return

    if not deltas:
        console.print("[yellow]No deltas match the filters[/yellow]")
        return
    for rec in records:
        console.print(f"\n[bold cyan]Delta {rec['id']}[/bold cyan]")
        console.print(f"  Action: [green]{rec['action']}[/green]")
        console.print(f"  Table: [yellow]{rec['table_name']}[/yellow]")
        console.print(f"  Timestamp: {rec['timestamp']}")
        if show_payload:
            for label in ("old_data", "new_data"):
                console.print(f"  {label}:")
                console.print(Syntax(json.dumps(rec[label], indent=2), "json", theme="monokai", line_numbers=False))
    console.print(f"\n[bold]Total deltas:[/bold] {len(records)}")


@app.command()
def history(
    table_name: str = typer.Argument(..., help="Tracked table"),
    key: str = typer.Argument(..., help="Identifier value of the row"),
    source: str = SOURCE_OPTION,
    log_table: str = LOG_TABLE_OPTION,
    row_schema: str = ROW_SCHEMA_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Show every delta that touched one row.

    Examples:
        deltactl log history people 42
    """
    try:
        schema = load_settings(source, row_schema=row_schema).row_schema
        with open_log(source, log_table) as log:
            deltas = row_history(log, table_name, parse_key(key, schema), key_column=schema.key)
        records = [d.to_dict() for d in deltas]
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"deltas": records, "count": len(records)}, indent=2))
        return
    if not deltas:
        console.print(f"[yellow]No deltas for {table_name} {schema.key}={key}[/yellow]")
        return
    console.print(_delta_table(f"History: {table_name} {schema.key}={key}", deltas))


@app.command()
def drop(
    delta_ids: List[int] = typer.Argument(..., help="Ids of deltas to remove before replay"),
    source: str = SOURCE_OPTION,
    log_table: str = LOG_TABLE_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    json_output: bool = JSON_OPTION,
):
    """
    Remove deltas from the log so a replay leaves them out.

    This is the recovery path for unwanted history, e.g. dropping the DELETE
    deltas of an accidental mass-delete before replaying.

    Examples:
        deltactl log drop 17 18 19 --yes
    """
    if not yes and not json_output:
        typer.confirm(f"Permanently remove {len(delta_ids)} delta(s) from {log_table}?", abort=True)
    try:
        with open_log(source, log_table) as log:
            removed = log.drop(delta_ids)
    except (DeltaError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        print(json.dumps({"requested": sorted(set(delta_ids)), "removed": removed}))
        return
    console.print(f"[green]✓ Removed {removed} delta(s)[/green]")
    if removed < len(set(delta_ids)):
        console.print("[yellow]Some ids were not present in the log[/yellow]")
