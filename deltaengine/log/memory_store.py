"""
In-process delta log.

Same ordering and id rules as the SQL log, without a database. Useful for
building a log by hand and for previewing replays.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, Optional

from ..core.delta import Delta, to_utc
from .store import DeltaLog


class MemoryDeltaLog(DeltaLog):
    """Delta log held in a dict keyed by id."""

    def __init__(self) -> None:
        self._deltas: Dict[int, Delta] = {}
        self._last_id = 0
        self._lock = threading.Lock()

    def create(self) -> None:
        return None

    def append(self, delta: Delta, connection: Optional[Any] = None) -> Delta:
        delta.validate()
        ts = to_utc(delta.timestamp) if delta.timestamp is not None else datetime.now(timezone.utc)
        with self._lock:
            self._last_id += 1
            stored = delta.with_id(self._last_id, ts)
            self._deltas[stored.id] = stored
        return stored

    def read(self, table_name: Optional[str] = None, until: Optional[datetime] = None) -> Iterator[Delta]:
        with self._lock:
            snapshot = sorted(self._deltas.values(), key=lambda d: d.sort_key())
        bound = to_utc(until) if until is not None else None
        for delta in snapshot:
            if table_name is not None and delta.table_name != table_name:
                continue
            if bound is not None and delta.sort_key()[0] > bound:
                continue
            yield delta

    def get(self, delta_id: int) -> Optional[Delta]:
        return self._deltas.get(delta_id)

    def drop(self, delta_ids: Iterable[int]) -> int:
        removed = 0
        with self._lock:
            for delta_id in set(delta_ids):
                if self._deltas.pop(delta_id, None) is not None:
                    removed += 1
        return removed

    def count(self, table_name: Optional[str] = None) -> int:
        if table_name is None:
            return len(self._deltas)
        return super().count(table_name)
