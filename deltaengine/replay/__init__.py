"""
Replay system for reconstructing table state from the delta log.

Replay applies each delta, in (timestamp, id) order, to the restored
database. Same log into a pristine target always yields the same tables.
"""

from .runner import ReplayResult, replay
from .applier import TableApplier, ensure_table
from .oracle import TableExistenceOracle

__all__ = [
    "ReplayResult",
    "replay",
    "TableApplier",
    "ensure_table",
    "TableExistenceOracle",
]
