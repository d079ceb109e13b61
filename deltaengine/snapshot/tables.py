"""
Table snapshots as JSON files.

A snapshot is the full content of one table written as a JSON array of row
objects, in the same canonical form the delta codec uses for row payloads.
Snapshots seed a restored database before deltas are replayed on top.

Naming: {directory}/{table}.json
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from ..core import codec
from ..core.errors import ApplyError
from ..core.naming import check_table_name
from ..core.schema import DEFAULT_ROW_SCHEMA, RowSchema
from ..db import list_tables
from ..replay.applier import ensure_table

logger = logging.getLogger(__name__)


def snapshot_path(directory: str, table_name: str) -> Path:
    return Path(directory) / f"{table_name}.json"


def export_table(
    engine: Engine,
    table_name: str,
    path: str,
    schema: Optional[RowSchema] = None,
) -> int:
    """
    Write every row of a table to a JSON file.

    Rows are ordered by primary key so the same table content always
    produces the same file.

    Args:
        engine: Database holding the table
        table_name: Table to export (must exist)
        path: Output file
        schema: If given, every row must match it

    Returns:
        Number of rows written

    Raises:
        ValueError: If the table is not in the database
        MalformedDeltaPayload: If a row holds unsupported values
    """
    check_table_name(table_name, list_tables(engine))
    table = sa.Table(table_name, sa.MetaData(), autoload_with=engine)
    stmt = sa.select(table)
    pk = list(table.primary_key.columns)
    if pk:
        stmt = stmt.order_by(*pk)

    with engine.connect() as conn:
        rows = [dict(r._mapping) for r in conn.execute(stmt)]
    if schema is not None:
        for row in rows:
            schema.validate(row)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(codec.encode_many(rows), encoding="utf-8")
    logger.info("Table %s backed up as JSON (%d rows) to %s", table_name, len(rows), target)
    return len(rows)


def import_table(
    engine: Engine,
    table_name: str,
    path: str,
    schema: RowSchema = DEFAULT_ROW_SCHEMA,
) -> int:
    """
    Load a JSON snapshot into a table, creating the fallback table if needed.

    All rows are inserted in one transaction.

    Returns:
        Number of rows inserted

    Raises:
        MalformedDeltaPayload: If the file is not a valid snapshot for `schema`
        ApplyError: If the database rejects the rows
    """
    rows = codec.decode_many(Path(path).read_bytes())
    for row in rows:
        schema.validate(row)

    ensure_table(engine, table_name, schema)
    if not rows:
        return 0
    table = schema.table_clause(table_name)
    try:
        with engine.begin() as conn:
            conn.execute(sa.insert(table), rows)
    except sa.exc.SQLAlchemyError as ex:
        raise ApplyError(f"failed to insert data into restored table {table_name}: {ex}") from ex
    logger.info("Table %s restored from JSON (%d rows)", table_name, len(rows))
    return len(rows)


def backup_and_restore(
    source: Engine,
    target: Engine,
    directory: str,
    schema: RowSchema = DEFAULT_ROW_SCHEMA,
    tables: Optional[Iterable[str]] = None,
    log_table: str = "deltas",
) -> Dict[str, int]:
    """
    Export tables from source and load them into target.

    Args:
        tables: Tables to copy (None = every table except the delta log)

    Returns:
        Rows copied per table
    """
    names = [t for t in list_tables(source) if t != log_table] if tables is None else list(tables)
    copied = {}
    for name in names:
        path = snapshot_path(directory, name)
        export_table(source, name, str(path), schema=schema)
        copied[name] = import_table(target, name, str(path), schema=schema)
    logger.info("Backup and restore completed for %d tables", len(copied))
    return copied
