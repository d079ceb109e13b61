"""
SQL delta log: the persisted log table.

Layout (shared with the capture hooks, which write to it directly):
    id          auto-increment primary key
    action      INSERT | UPDATE | DELETE
    table_name  tracked table the mutation occurred on
    old_data    JSONB (PostgreSQL) / TEXT (SQLite), nullable
    new_data    JSONB (PostgreSQL) / TEXT (SQLite), nullable
    timestamp   timezone-aware capture time, defaults to CURRENT_TIMESTAMP
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine

from ..core.delta import Delta, to_utc
from ..core.errors import DeltaLogError
from ..core.naming import is_safe_identifier
from .store import DeltaLog

PAYLOAD_TYPE = sa.Text().with_variant(JSONB(), "postgresql")


def delta_log_table(metadata: sa.MetaData, name: str = "deltas") -> sa.Table:
    """Table definition of the delta log."""
    return sa.Table(
        name,
        metadata,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(10), nullable=False),
        sa.Column("table_name", sa.String(100), nullable=False),
        sa.Column("old_data", PAYLOAD_TYPE, nullable=True),
        sa.Column("new_data", PAYLOAD_TYPE, nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Index(f"ix_{name}_timestamp_id", "timestamp", "id"),
        # never reuse ids of dropped deltas
        sqlite_autoincrement=True,
    )


class SqlDeltaLog(DeltaLog):
    """
    Delta log stored in a table of the source database.

    Guarantees:
    - Ids come from the database sequence, never reused
    - Reads are ordered by (timestamp, id)
    - Payloads are read back as the JSON text capture wrote
    """

    def __init__(self, engine: Engine, table_name: str = "deltas") -> None:
        if not is_safe_identifier(table_name):
            raise ValueError(f"invalid delta log table name: {table_name!r}")
        self.engine = engine
        self.table_name = table_name
        self.metadata = sa.MetaData()
        self.table = delta_log_table(self.metadata, table_name)

    def create(self) -> None:
        try:
            self.metadata.create_all(self.engine, checkfirst=True)
        except sa.exc.SQLAlchemyError as ex:
            raise DeltaLogError(f"failed to create delta log table {self.table_name}: {ex}") from ex

    def exists(self) -> bool:
        return sa.inspect(self.engine).has_table(self.table_name)

    def _payload(self, payload: Optional[str]) -> Any:
        if payload is None:
            return sa.null()
        target_type = JSONB() if self.engine.dialect.name == "postgresql" else sa.Text()
        return sa.cast(sa.literal(payload, sa.Text()), target_type)

    def append(self, delta: Delta, connection: Optional[sa.Connection] = None) -> Delta:
        delta.validate()
        ts = to_utc(delta.timestamp) if delta.timestamp is not None else datetime.now(timezone.utc)
        stmt = sa.insert(self.table).values(
            action=delta.action,
            table_name=delta.table_name,
            old_data=self._payload(delta.old_data),
            new_data=self._payload(delta.new_data),
            timestamp=ts,
        )
        try:
            if connection is not None:
                result = connection.execute(stmt)
            else:
                with self.engine.begin() as conn:
                    result = conn.execute(stmt)
        except sa.exc.SQLAlchemyError as ex:
            raise DeltaLogError(f"failed to append delta: {ex}") from ex
        return delta.with_id(result.inserted_primary_key[0], ts)

    def _select(self) -> sa.Select:
        t = self.table
        return sa.select(
            t.c.id,
            t.c.action,
            t.c.table_name,
            sa.cast(t.c.old_data, sa.Text).label("old_data"),
            sa.cast(t.c.new_data, sa.Text).label("new_data"),
            t.c.timestamp,
        )

    @staticmethod
    def _to_delta(row: sa.Row) -> Delta:
        return Delta(
            id=row.id,
            action=row.action,
            table_name=row.table_name,
            old_data=row.old_data,
            new_data=row.new_data,
            timestamp=to_utc(row.timestamp) if row.timestamp is not None else None,
        )

    def read(self, table_name: Optional[str] = None, until: Optional[datetime] = None) -> Iterator[Delta]:
        t = self.table
        stmt = self._select().order_by(t.c.timestamp, t.c.id)
        if table_name is not None:
            stmt = stmt.where(t.c.table_name == table_name)
        if until is not None:
            stmt = stmt.where(t.c.timestamp <= to_utc(until))
        try:
            with self.engine.connect() as conn:
                result = conn.execution_options(stream_results=True).execute(stmt)
                for row in result:
                    yield self._to_delta(row)
        except sa.exc.SQLAlchemyError as ex:
            raise DeltaLogError(f"error fetching deltas: {ex}") from ex

    def get(self, delta_id: int) -> Optional[Delta]:
        stmt = self._select().where(self.table.c.id == delta_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except sa.exc.SQLAlchemyError as ex:
            raise DeltaLogError(f"error fetching delta {delta_id}: {ex}") from ex
        return self._to_delta(row) if row is not None else None

    def drop(self, delta_ids: Iterable[int]) -> int:
        ids = sorted(set(delta_ids))
        if not ids:
            return 0
        stmt = sa.delete(self.table).where(self.table.c.id.in_(ids))
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount
        except sa.exc.SQLAlchemyError as ex:
            raise DeltaLogError(f"failed to drop deltas {ids}: {ex}") from ex

    def count(self, table_name: Optional[str] = None) -> int:
        stmt = sa.select(sa.func.count()).select_from(self.table)
        if table_name is not None:
            stmt = stmt.where(self.table.c.table_name == table_name)
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except sa.exc.SQLAlchemyError as ex:
            raise DeltaLogError(f"failed to count deltas: {ex}") from ex
