"""
Change-capture installer.

Installs, per tracked table, a row-level hook that writes one delta into the
delta log for every insert, update or delete, inside the transaction of the
triggering statement.
"""

import logging
from typing import Iterable, List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from ..core.errors import DeltaLogError, InstallationError
from ..core.naming import check_table_name, is_safe_identifier
from ..db import list_tables
from ..log.sql_store import SqlDeltaLog
from .dialects import dialect_for

logger = logging.getLogger(__name__)


def _resolve_tables(engine: Engine, tables: Optional[Iterable[str]], log_table: str) -> List[str]:
    enumerated = []
    for table in list_tables(engine):
        if table == log_table:
            continue
        if not is_safe_identifier(table):
            logger.warning("Skipping table %r: name is not a plain identifier", table)
            continue
        enumerated.append(table)
    if tables is None:
        return enumerated
    resolved = []
    for table in tables:
        if table == log_table:
            raise InstallationError("the delta log table cannot be tracked", table=table)
        try:
            resolved.append(check_table_name(table, enumerated))
        except ValueError as ex:
            raise InstallationError(str(ex), table=table) from ex
    return resolved


def install(engine: Engine, tables: Optional[Iterable[str]] = None, log_table: str = "deltas") -> List[str]:
    """
    Create the delta log and install capture hooks.

    Each table is instrumented in its own transaction. The first failure
    aborts the run; tables already instrumented stay instrumented.

    Args:
        engine: Source database
        tables: Tables to track (None = every table except the log table);
            each must be a member of the enumerated table set
        log_table: Delta log table name

    Returns:
        Names of the tables instrumented by this run

    Raises:
        InstallationError: If the log table or any hook cannot be created
        DatabaseConnectionError: If the catalog cannot be read
    """
    dialect = dialect_for(engine)
    try:
        SqlDeltaLog(engine, log_table).create()
    except DeltaLogError as ex:
        raise InstallationError(f"failed to create delta log table: {ex}") from ex
    logger.info("Delta log table %s created (or already exists)", log_table)

    installed = []
    for table in _resolve_tables(engine, tables, log_table):
        try:
            with engine.begin() as conn:
                for statement in dialect.install_statements(conn, table, log_table):
                    conn.exec_driver_sql(statement)
        except sa.exc.SQLAlchemyError as ex:
            logger.error("Failed to install capture hook on %s: %s", table, ex)
            raise InstallationError(f"failed to install capture hook on {table}: {ex}", table=table) from ex
        logger.info("Capture hook added to table %s", table)
        installed.append(table)
    return installed


def installed_tables(engine: Engine) -> List[str]:
    """Tables carrying a capture hook, found by the hook naming convention."""
    dialect = dialect_for(engine)
    with engine.connect() as conn:
        return dialect.installed_tables(conn)


def uninstall(engine: Engine, tables: Optional[Iterable[str]] = None) -> List[str]:
    """
    Remove capture hooks and their backing functions.

    The delta log itself is left untouched.

    Args:
        engine: Source database
        tables: Tables to clean up (None = every instrumented table)

    Returns:
        Names of the tables cleaned up

    Raises:
        InstallationError: If a hook cannot be dropped
    """
    dialect = dialect_for(engine)
    targets = installed_tables(engine) if tables is None else list(tables)
    removed = []
    for table in targets:
        if not is_safe_identifier(table):
            raise InstallationError(f"invalid table name: {table!r}", table=table)
        try:
            with engine.begin() as conn:
                for statement in dialect.uninstall_statements(conn, table):
                    conn.exec_driver_sql(statement)
        except sa.exc.SQLAlchemyError as ex:
            raise InstallationError(f"failed to remove capture hook on {table}: {ex}", table=table) from ex
        logger.info("Capture hook removed from table %s", table)
        removed.append(table)
    return removed
