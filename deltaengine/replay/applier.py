"""
Apply single deltas to a target table.

Each delta is one statement in its own transaction; nothing wraps a whole
replay run.
"""

import logging
from typing import Any, Dict

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.sql.expression import Executable

from ..core.delta import DELETE, INSERT, UPDATE, Delta
from ..core.errors import ApplyError, DatabaseConnectionError
from ..core.naming import is_safe_identifier
from ..core.schema import RowSchema

logger = logging.getLogger(__name__)


def ensure_table(engine: Engine, table_name: str, schema: RowSchema) -> bool:
    """
    Create the minimal fallback table with the fixed column set if missing.

    Returns:
        True if the table was created

    Raises:
        ValueError: If the name is not a plain identifier
        ApplyError: If the table cannot be looked up or created
    """
    if not is_safe_identifier(table_name):
        raise ValueError(f"invalid table name: {table_name!r}")
    try:
        if sa.inspect(engine).has_table(table_name):
            return False
        schema.to_table(table_name, sa.MetaData()).create(engine, checkfirst=True)
    except sa.exc.SQLAlchemyError as ex:
        raise ApplyError(f"failed to create fallback table {table_name}: {ex}") from ex
    logger.info("Created fallback table %s (%s)", table_name, schema.describe())
    return True


class TableApplier:
    """
    Turns a delta into the matching INSERT, UPDATE or DELETE on the target.

    In strict mode an UPDATE or DELETE that matches no row is an ApplyError:
    the target has diverged from the history being replayed.
    """

    def __init__(self, engine: Engine, schema: RowSchema, strict: bool = True) -> None:
        self.engine = engine
        self.schema = schema
        self.strict = strict

    def statement(self, delta: Delta) -> Executable:
        """
        Build the DML for one delta.

        Raises:
            MalformedDeltaPayload: If a payload is missing, undecodable or
                does not match the row schema
        """
        delta.validate()
        table = self.schema.table_clause(delta.table_name)
        key_col = table.c[self.schema.key]

        if delta.action == INSERT:
            new = self.schema.validate(delta.new_row(), delta_id=delta.id)
            return sa.insert(table).values(**new)

        old = self.schema.validate(delta.old_row(), delta_id=delta.id)
        if delta.action == DELETE:
            return sa.delete(table).where(key_col == old[self.schema.key])

        new = self.schema.validate(delta.new_row(), delta_id=delta.id)
        values: Dict[str, Any] = {c.name: new[c.name] for c in self.schema.fields}
        if new[self.schema.key] != old[self.schema.key]:
            values[self.schema.key] = new[self.schema.key]
        return sa.update(table).where(key_col == old[self.schema.key]).values(**values)

    def apply(self, delta: Delta) -> int:
        """
        Apply one delta.

        Returns:
            Number of rows affected

        Raises:
            MalformedDeltaPayload: If the delta cannot be decoded
            ApplyError: If the database rejects the statement, or (strict)
                an UPDATE/DELETE matches no row
            DatabaseConnectionError: If the target connection is lost
        """
        stmt = self.statement(delta)
        try:
            with self.engine.begin() as conn:
                rowcount = conn.execute(stmt).rowcount
        except sa.exc.DBAPIError as ex:
            if ex.connection_invalidated:
                raise DatabaseConnectionError(f"lost connection to target: {ex}") from ex
            raise ApplyError(
                f"error applying {delta.action.lower()} to {delta.table_name}: {ex}", delta_id=delta.id
            ) from ex
        except sa.exc.SQLAlchemyError as ex:
            raise ApplyError(
                f"error applying {delta.action.lower()} to {delta.table_name}: {ex}", delta_id=delta.id
            ) from ex

        if self.strict and delta.action in (UPDATE, DELETE) and rowcount == 0:
            key = self.schema.key
            raise ApplyError(
                f"{delta.action} on {delta.table_name} matched no row with {key}={delta.old_row()[key]!r}",
                delta_id=delta.id,
            )
        logger.debug("Applied delta %s: %s on %s (%d rows)", delta.id, delta.action, delta.table_name, rowcount)
        return rowcount
