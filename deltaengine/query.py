"""
Query helpers over delta sequences.

project() is the pure, in-memory counterpart of the replay engine: it lets an
operator preview the rows a replay would produce (for example after dropping
a delta) without touching a target database.
"""

from typing import Any, Dict, Iterable, List

from .core.delta import DELETE, INSERT, Delta
from .core.errors import ApplyError
from .core.schema import DEFAULT_ROW_SCHEMA, RowSchema
from .log.store import DeltaLog

TableRows = Dict[Any, Dict[str, Any]]


def summarize(deltas: Iterable[Delta]) -> Dict[str, Any]:
    """Count deltas per action and per table."""
    actions: Dict[str, int] = {}
    tables: Dict[str, int] = {}
    total = 0
    for d in deltas:
        total += 1
        actions[d.action] = actions.get(d.action, 0) + 1
        tables[d.table_name] = tables.get(d.table_name, 0) + 1
    return {"total": total, "actions": actions, "tables": tables}


def row_history(log: DeltaLog, table_name: str, key: Any, key_column: str = "id") -> List[Delta]:
    """
    All deltas touching one row, in replay order.

    A row is matched on either side of the delta, so an UPDATE that changed
    the key shows up in the history of both the old and the new key.
    """
    history = []
    for d in log.read(table_name=table_name):
        for row in (d.old_row(), d.new_row()):
            if row is not None and row.get(key_column) == key:
                history.append(d)
                break
    return history


def project(
    deltas: Iterable[Delta],
    schema: RowSchema = DEFAULT_ROW_SCHEMA,
    strict: bool = True,
) -> Dict[str, TableRows]:
    """
    Reconstruct tables in memory from an ordered delta sequence.

    Uses the replay engine's semantics: INSERT adds the row, UPDATE rewrites
    the fields (and key) of the row found by the old key, DELETE removes the
    row found by the old key.

    Returns:
        {table_name: {key: row}}

    Raises:
        MalformedDeltaPayload: If a delta cannot be decoded
        ApplyError: On a duplicate insert, or (strict) an UPDATE/DELETE of a
            row that does not exist
    """
    state: Dict[str, TableRows] = {}
    key = schema.key
    for d in deltas:
        d.validate()
        rows = state.setdefault(d.table_name, {})

        if d.action == INSERT:
            new = schema.validate(d.new_row(), delta_id=d.id)
            if new[key] in rows:
                raise ApplyError(f"duplicate {key}={new[key]!r} in {d.table_name}", delta_id=d.id)
            rows[new[key]] = dict(new)
            continue

        old = schema.validate(d.old_row(), delta_id=d.id)
        if old[key] not in rows:
            if strict:
                raise ApplyError(
                    f"{d.action} on {d.table_name} matched no row with {key}={old[key]!r}", delta_id=d.id
                )
            continue

        if d.action == DELETE:
            del rows[old[key]]
            continue

        new = schema.validate(d.new_row(), delta_id=d.id)
        if new[key] != old[key] and new[key] in rows:
            raise ApplyError(f"duplicate {key}={new[key]!r} in {d.table_name}", delta_id=d.id)
        row = rows.pop(old[key])
        row.update(new)
        rows[new[key]] = row

    return state
