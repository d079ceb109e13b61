"""
Delta log storage.

This module provides:
- DeltaLog: Abstract interface for delta persistence
- SqlDeltaLog: The log table in the source database (written by capture hooks)
- MemoryDeltaLog: In-process log with the same ordering rules
"""

from .store import DeltaLog
from .sql_store import SqlDeltaLog, delta_log_table, PAYLOAD_TYPE
from .memory_store import MemoryDeltaLog

__all__ = [
    "DeltaLog",
    "SqlDeltaLog",
    "MemoryDeltaLog",
    "delta_log_table",
    "PAYLOAD_TYPE",
]
