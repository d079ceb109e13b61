"""
Options and helpers shared by the command modules.

Option values are resolved into one deltaengine.config.Settings per command;
engines opened from it are disposed when the command finishes.
"""

import json
from contextlib import contextmanager
from typing import Any, Iterator, NoReturn, Optional

import typer
from rich.console import Console
from sqlalchemy.engine import Engine, make_url

from deltaengine.config import DEFAULT_LOG_TABLE, Settings
from deltaengine.core.schema import DEFAULT_ROW_SCHEMA, INTEGER, RowSchema
from deltaengine.db import connect, ensure_database

console = Console()

SOURCE_OPTION = typer.Option(
    ..., "--source", "-s", envvar="DELTA_SOURCE_URL", help="Source database URL"
)
TARGET_OPTION = typer.Option(
    None,
    "--target",
    "-t",
    envvar="DELTA_TARGET_URL",
    help="Restored database URL (default: <source>_restored)",
)
LOG_TABLE_OPTION = typer.Option(
    DEFAULT_LOG_TABLE, "--log-table", envvar="DELTA_LOG_TABLE", help="Delta log table name"
)
ROW_SCHEMA_OPTION = typer.Option(
    DEFAULT_ROW_SCHEMA.describe(),
    "--row-schema",
    envvar="DELTA_ROW_SCHEMA",
    help="Row shape as name:kind pairs",
)
JSON_OPTION = typer.Option(False, "--json", help="Output as JSON")


def fail(message: str, json_output: bool, code: int = 2, **extra: Any) -> NoReturn:
    """Report an error in the requested format and exit."""
    if json_output:
        print(json.dumps({"error": message, **extra}))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)


def load_settings(
    source: str,
    target: Optional[str] = None,
    log_table: Optional[str] = None,
    row_schema: Optional[str] = None,
) -> Settings:
    """
    Raises:
        ValueError: If an option value is invalid
    """
    return Settings.resolve(source, target_url=target, log_table=log_table, row_schema=row_schema)


@contextmanager
def source_engine(settings: Settings) -> Iterator[Engine]:
    engine = connect(settings.source_url)
    try:
        yield engine
    finally:
        engine.dispose()


@contextmanager
def target_engine(settings: Settings) -> Iterator[Engine]:
    """
    Connect to the restored database.

    A derived <source>_restored database is created next to the source
    database on PostgreSQL when missing.
    """
    if settings.target_derived:
        with source_engine(settings) as source:
            ensure_database(source, make_url(settings.target_url).database)
    engine = connect(settings.target_url)
    try:
        yield engine
    finally:
        engine.dispose()


def parse_key(value: str, schema: RowSchema) -> Any:
    """Convert a key given on the command line to the key column's kind."""
    if schema.column(schema.key).kind == INTEGER:
        return int(value)
    return value
