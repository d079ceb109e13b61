"""
Per-dialect capture hook generation.

Each dialect turns (tracked table, delta log table) into the DDL that makes
every row insert/update/delete on the table write one delta, inside the
triggering transaction.

PostgreSQL: one PL/pgSQL function log_<table>_changes() and one trigger
<table>_trigger firing AFTER INSERT OR UPDATE OR DELETE FOR EACH ROW.

SQLite: three triggers <table>_trigger_insert|update|delete (SQLite triggers
cover a single event), each writing json_object() over the table's columns.
"""

from abc import ABC, abstractmethod
from typing import Dict, List

import sqlalchemy as sa

from ..core.delta import DELETE, INSERT, UPDATE
from ..core.errors import InstallationError
from ..core.naming import (
    POSTGRES_MAX_IDENTIFIER,
    action_trigger_name,
    function_name,
    is_safe_identifier,
    table_from_trigger,
    trigger_name,
)


class CaptureDialect(ABC):
    """Generates and inspects capture hooks for one database dialect."""

    name: str = ""

    @abstractmethod
    def install_statements(self, conn: sa.Connection, table: str, log_table: str) -> List[str]:
        """
        DDL that (re)creates the hook on `table`.

        Must be replace-if-exists: running it on an instrumented table leaves
        exactly one hook.
        """
        ...

    @abstractmethod
    def uninstall_statements(self, conn: sa.Connection, table: str) -> List[str]:
        """DDL that removes the hook on `table` (no error if absent)."""
        ...

    @abstractmethod
    def installed_tables(self, conn: sa.Connection) -> List[str]:
        """Tables that currently carry a hook following the naming convention."""
        ...

    @staticmethod
    def _quote(conn: sa.Connection, name: str) -> str:
        return conn.dialect.identifier_preparer.quote(name)


class PostgresCapture(CaptureDialect):
    name = "postgresql"

    FUNCTION_TEMPLATE = """
CREATE OR REPLACE FUNCTION {function}() RETURNS TRIGGER AS $$
BEGIN
    IF (TG_OP = 'INSERT') THEN
        INSERT INTO {log} (action, table_name, new_data)
        VALUES ('INSERT', TG_TABLE_NAME, row_to_json(NEW)::jsonb);
        RETURN NEW;
    ELSIF (TG_OP = 'UPDATE') THEN
        INSERT INTO {log} (action, table_name, old_data, new_data)
        VALUES ('UPDATE', TG_TABLE_NAME, row_to_json(OLD)::jsonb, row_to_json(NEW)::jsonb);
        RETURN NEW;
    ELSIF (TG_OP = 'DELETE') THEN
        INSERT INTO {log} (action, table_name, old_data)
        VALUES ('DELETE', TG_TABLE_NAME, row_to_json(OLD)::jsonb);
        RETURN OLD;
    END IF;
    RETURN NULL;
END;
$$ LANGUAGE plpgsql
"""

    def _check_length(self, table: str) -> None:
        for generated in (function_name(table), trigger_name(table)):
            if len(generated) > POSTGRES_MAX_IDENTIFIER:
                raise InstallationError(
                    f"generated name {generated!r} exceeds {POSTGRES_MAX_IDENTIFIER} characters",
                    table=table,
                )

    def install_statements(self, conn: sa.Connection, table: str, log_table: str) -> List[str]:
        self._check_length(table)
        fn = self._quote(conn, function_name(table))
        trig = self._quote(conn, trigger_name(table))
        qt = self._quote(conn, table)
        return [
            self.FUNCTION_TEMPLATE.format(function=fn, log=self._quote(conn, log_table)),
            f"DROP TRIGGER IF EXISTS {trig} ON {qt}",
            f"CREATE TRIGGER {trig} AFTER INSERT OR UPDATE OR DELETE ON {qt} FOR EACH ROW EXECUTE FUNCTION {fn}()",
        ]

    def uninstall_statements(self, conn: sa.Connection, table: str) -> List[str]:
        fn = self._quote(conn, function_name(table))
        trig = self._quote(conn, trigger_name(table))
        return [
            f"DROP TRIGGER IF EXISTS {trig} ON {self._quote(conn, table)}",
            f"DROP FUNCTION IF EXISTS {fn}()",
        ]

    def installed_tables(self, conn: sa.Connection) -> List[str]:
        rows = conn.execute(
            sa.text(
                "SELECT DISTINCT event_object_table, trigger_name "
                "FROM information_schema.triggers "
                "WHERE trigger_schema = current_schema()"
            )
        )
        return sorted({r[0] for r in rows if trigger_name(r[0]) == r[1]})


class SqliteCapture(CaptureDialect):
    name = "sqlite"

    # SQLite 'now' is UTC; pad milliseconds to the microsecond layout
    # SQLAlchemy uses for DateTime on SQLite
    TIMESTAMP_EXPR = "strftime('%Y-%m-%d %H:%M:%f', 'now') || '000'"

    def _row_json(self, conn: sa.Connection, table: str, ref: str) -> str:
        columns = sa.inspect(conn).get_columns(table)
        if not columns:
            raise InstallationError(f"table {table} has no columns", table=table)
        args = []
        for col in columns:
            name = col["name"]
            if not is_safe_identifier(name):
                raise InstallationError(f"unsupported column name {name!r} on {table}", table=table)
            value = f"{ref}.{self._quote(conn, name)}"
            if isinstance(col["type"], sa.Boolean):
                # json() must be the direct argument for json_object to embed it
                value = (
                    f"json(CASE WHEN {value} IS NULL THEN 'null' "
                    f"WHEN {value} THEN 'true' ELSE 'false' END)"
                )
            args.append(f"'{name}', {value}")
        return f"json_object({', '.join(args)})"

    def install_statements(self, conn: sa.Connection, table: str, log_table: str) -> List[str]:
        # the table name is embedded as a string literal in the trigger body
        if not is_safe_identifier(table):
            raise InstallationError(f"invalid table name: {table!r}", table=table)
        qt = self._quote(conn, table)
        ql = self._quote(conn, log_table)
        payloads: Dict[str, tuple] = {
            INSERT: ("NULL", self._row_json(conn, table, "NEW")),
            UPDATE: (self._row_json(conn, table, "OLD"), self._row_json(conn, table, "NEW")),
            DELETE: (self._row_json(conn, table, "OLD"), "NULL"),
        }
        statements = []
        for action, (old_expr, new_expr) in payloads.items():
            trig = self._quote(conn, action_trigger_name(table, action))
            statements.append(f"DROP TRIGGER IF EXISTS {trig}")
            statements.append(
                f"CREATE TRIGGER {trig} AFTER {action} ON {qt} FOR EACH ROW BEGIN "
                f"INSERT INTO {ql} (action, table_name, old_data, new_data, \"timestamp\") "
                f"VALUES ('{action}', '{table}', {old_expr}, {new_expr}, {self.TIMESTAMP_EXPR}); "
                f"END"
            )
        return statements

    def uninstall_statements(self, conn: sa.Connection, table: str) -> List[str]:
        return [
            f"DROP TRIGGER IF EXISTS {self._quote(conn, action_trigger_name(table, action))}"
            for action in (INSERT, UPDATE, DELETE)
        ]

    def installed_tables(self, conn: sa.Connection) -> List[str]:
        rows = conn.execute(sa.text("SELECT name, tbl_name FROM sqlite_master WHERE type = 'trigger'"))
        return sorted({r[1] for r in rows if table_from_trigger(r[0]) == r[1]})


DIALECTS: Dict[str, CaptureDialect] = {
    PostgresCapture.name: PostgresCapture(),
    SqliteCapture.name: SqliteCapture(),
}


def dialect_for(engine_or_conn) -> CaptureDialect:
    """
    Look up the capture dialect for an engine or connection.

    Raises:
        InstallationError: If the database has no capture support
    """
    name = engine_or_conn.dialect.name
    try:
        return DIALECTS[name]
    except KeyError:
        raise InstallationError(f"change capture is not supported on {name}") from None
