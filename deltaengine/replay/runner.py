"""
Replay runner: reconstruct target tables from the delta log.

Deltas are applied one at a time in (timestamp, id) order. A failure stops the
run; deltas already applied stay applied, so a failed run must be repeated
against a clean target.
"""

import uuid
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy.engine import Engine

from ..core.errors import DeltaError, TargetTableMissing
from ..core.naming import is_safe_identifier
from ..core.schema import DEFAULT_ROW_SCHEMA, RowSchema
from ..db import list_tables
from ..log.store import DeltaLog
from ..logging_config import get_logger
from .applier import TableApplier, ensure_table
from .oracle import TableExistenceOracle


@dataclass(frozen=True)
class ReplayResult:
    """
    Result of a replay run.

    Fields:
        applied: Number of deltas applied
        skipped: Number of deltas skipped (table missing or not selected)
        last_delta_id: Id of the last applied delta
        tables: Applied count per table
        skipped_tables: Skipped count per table
        run_id: Trace id of the run's log records
    """
    applied: int
    skipped: int
    last_delta_id: Optional[int] = None
    tables: Dict[str, int] = field(default_factory=dict)
    skipped_tables: Dict[str, int] = field(default_factory=dict)
    run_id: str = ""


def replay(
    log: DeltaLog,
    target: Engine,
    schema: RowSchema = DEFAULT_ROW_SCHEMA,
    tables: Optional[Iterable[str]] = None,
    until: Optional[datetime] = None,
    strict: bool = True,
    create_missing: bool = False,
) -> ReplayResult:
    """
    Replay the delta log into a target database.

    Replay is not idempotent: run it against a pristine target. Replaying the
    same log twice into one target fails on duplicate keys or missing rows.

    Args:
        log: Delta log to read
        target: Restored database
        schema: Row shape shared by source and target tables
        tables: Only replay these tables (None = all); others are skipped
        until: Reconstruct state as of this instant (inclusive, None = all)
        strict: Treat an UPDATE/DELETE matching no row as an error
        create_missing: Create the fallback table for missing target tables
            instead of skipping their deltas

    Returns:
        ReplayResult with counts

    Raises:
        MalformedDeltaPayload: If a stored delta cannot be decoded
        ApplyError: If the target rejects a delta
        DatabaseConnectionError: If the target cannot be reached
        DeltaLogError: If the log cannot be read
    """
    run_id = uuid.uuid4().hex[:12]
    logger = get_logger(__name__, trace_id=f"replay-{run_id}")
    selected = set(tables) if tables is not None else None

    # allow-list: tables present in the target when the run starts
    allowed = set(list_tables(target))
    oracle = TableExistenceOracle(target)
    applier = TableApplier(target, schema, strict=strict)

    applied = 0
    skipped = 0
    last_id = None
    per_table: Dict[str, int] = {}
    skipped_tables: Dict[str, int] = {}

    logger.info("Replaying delta log into %s", target.url.render_as_string(hide_password=True))

    # release the log cursor even when a delta aborts the run
    with closing(log.read(until=until)) as deltas:
        for delta in deltas:
            name = delta.table_name
            if selected is not None and name not in selected:
                skipped += 1
                skipped_tables[name] = skipped_tables.get(name, 0) + 1
                continue

            try:
                if name not in allowed:
                    raise TargetTableMissing(name)
                oracle.require(name)
            except TargetTableMissing:
                if create_missing and is_safe_identifier(name):
                    try:
                        ensure_table(target, name, schema)
                    except DeltaError as ex:
                        logger.error("Replay aborted at delta %s after %d applied: %s", delta.id, applied, ex)
                        raise
                    allowed.add(name)
                else:
                    logger.info("Skipping delta %s for non-existent table %s in the restored database", delta.id, name)
                    skipped += 1
                    skipped_tables[name] = skipped_tables.get(name, 0) + 1
                    continue

            try:
                applier.apply(delta)
            except DeltaError as ex:
                logger.error("Replay aborted at delta %s after %d applied: %s", delta.id, applied, ex)
                raise

            applied += 1
            last_id = delta.id
            per_table[name] = per_table.get(name, 0) + 1

    logger.info("Replay finished: %d applied, %d skipped", applied, skipped)
    return ReplayResult(
        applied=applied,
        skipped=skipped,
        last_delta_id=last_id,
        tables=per_table,
        skipped_tables=skipped_tables,
        run_id=run_id,
    )
