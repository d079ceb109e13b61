"""
Row schema descriptor.

Capture and replay agree on one fixed row shape: an identifier column plus a
small number of typed fields. The shape is injected rather than hardcoded so
the codec checks and the replay statements follow whatever table layout the
operator declares.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Tuple

import sqlalchemy as sa

from .errors import MalformedDeltaPayload

TEXT = "text"
INTEGER = "integer"
BOOLEAN = "boolean"

KINDS = (TEXT, INTEGER, BOOLEAN)


def _sa_type(kind: str) -> sa.types.TypeEngine:
    if kind == TEXT:
        return sa.Text()
    if kind == INTEGER:
        return sa.BigInteger()
    return sa.Boolean()


def _matches(kind: str, value: Any) -> bool:
    # bool is a subclass of int; keep the two kinds apart
    if kind == TEXT:
        return isinstance(value, str)
    if kind == INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, bool)


@dataclass(frozen=True)
class Column:
    name: str
    kind: str
    nullable: bool = True

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"unsupported column kind: {self.kind!r}")

    def sa_type(self) -> sa.types.TypeEngine:
        return _sa_type(self.kind)


@dataclass(frozen=True)
class RowSchema:
    """
    Ordered typed columns of a replayable row.

    Fields:
        columns: Columns in table order
        key: Name of the identifier column (must be one of columns)
    """
    columns: Tuple[Column, ...]
    key: str = "id"

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate column in row schema: {names}")
        if self.key not in names:
            raise ValueError(f"key column {self.key!r} not in row schema")

    @classmethod
    def of(cls, columns: Iterable[Column], key: str = "id") -> "RowSchema":
        return cls(columns=tuple(columns), key=key)

    @classmethod
    def parse(cls, text: str, key: str = "id") -> "RowSchema":
        """
        Parse "name:kind" pairs separated by commas.

        Example:
            RowSchema.parse("id:integer,name:text,age:integer")
        """
        columns = []
        for part in text.split(","):
            part = part.strip()
            if not part:
                continue
            name, sep, kind = part.partition(":")
            if not sep:
                raise ValueError(f"column must be given as name:kind, got {part!r}")
            columns.append(Column(name.strip(), kind.strip().lower()))
        return cls.of(columns, key=key)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @property
    def fields(self) -> Tuple[Column, ...]:
        """Non-key columns."""
        return tuple(c for c in self.columns if c.name != self.key)

    def column(self, name: str) -> Column:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)

    def describe(self) -> str:
        return ",".join(f"{c.name}:{c.kind}" for c in self.columns)

    def validate(self, snapshot: Dict[str, Any], delta_id: Any = None) -> Dict[str, Any]:
        """
        Check that a decoded snapshot has exactly this row shape.

        Raises:
            MalformedDeltaPayload: On missing or extra columns, a null key,
                or a value of the wrong kind
        """
        expected = set(self.names)
        actual = set(snapshot.keys())
        if actual != expected:
            missing = sorted(expected - actual)
            extra = sorted(actual - expected)
            raise MalformedDeltaPayload(
                f"row shape mismatch (missing={missing}, extra={extra})", delta_id=delta_id
            )
        for c in self.columns:
            value = snapshot[c.name]
            if value is None:
                if c.name == self.key or not c.nullable:
                    raise MalformedDeltaPayload(f"column {c.name!r} must not be null", delta_id=delta_id)
                continue
            if not _matches(c.kind, value):
                raise MalformedDeltaPayload(
                    f"column {c.name!r} expects {c.kind}, got {type(value).__name__}",
                    delta_id=delta_id,
                )
        return snapshot

    def table_clause(self, name: str) -> sa.TableClause:
        """Lightweight table construct for building DML against `name`."""
        return sa.table(name, *[sa.column(c.name, c.sa_type()) for c in self.columns])

    def to_table(self, name: str, metadata: sa.MetaData) -> sa.Table:
        """Minimal fallback table with this column set, keyed on the identifier."""
        cols = []
        for c in self.columns:
            if c.name == self.key:
                cols.append(sa.Column(c.name, c.sa_type(), primary_key=True, autoincrement=False))
            else:
                cols.append(sa.Column(c.name, c.sa_type(), nullable=c.nullable))
        return sa.Table(name, metadata, *cols)


DEFAULT_ROW_SCHEMA = RowSchema.of(
    [Column("id", INTEGER, nullable=False), Column("name", TEXT), Column("age", INTEGER)]
)
