"""
Delta model: one captured row mutation.

Deltas are immutable. Payloads are kept in their stored (encoded) form so the
log hands the replay engine exactly what capture wrote; decoding happens at
apply time.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from . import codec
from .errors import MalformedDeltaPayload

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

ACTIONS = frozenset({INSERT, UPDATE, DELETE})

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_utc(ts: datetime) -> datetime:
    """Normalize a timestamp to UTC, treating naive values as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class Delta:
    """
    Immutable delta record.

    Fields:
        action: INSERT, UPDATE or DELETE
        table_name: Table the mutation occurred on
        old_data: Encoded prior row state (UPDATE, DELETE)
        new_data: Encoded new row state (INSERT, UPDATE)
        timestamp: Capture time, establishes replay order
        id: Surrogate key (assigned by the delta log)
    """
    action: str
    table_name: str
    old_data: Optional[str] = None
    new_data: Optional[str] = None
    timestamp: Optional[datetime] = None
    id: Optional[int] = None

    @classmethod
    def capture(
        cls,
        action: str,
        table_name: str,
        old_row: Optional[Dict[str, Any]] = None,
        new_row: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> "Delta":
        """
        Build a delta from row snapshots, encoding them with the codec.

        Raises:
            MalformedDeltaPayload: If the action/snapshot combination is invalid
        """
        delta = cls(
            action=action,
            table_name=table_name,
            old_data=codec.encode(old_row) if old_row is not None else None,
            new_data=codec.encode(new_row) if new_row is not None else None,
            timestamp=timestamp,
        )
        delta.validate()
        return delta

    def require_id(self) -> int:
        """
        Get id or raise error if not assigned.

        Raises:
            ValueError: If id is None
        """
        if self.id is None:
            raise ValueError("Delta.id is required but None")
        return self.id

    def validate(self) -> None:
        """
        Check the action/payload invariant.

        INSERT carries only new_data, DELETE only old_data, UPDATE both.
        An UPDATE without old_data is rejected rather than applied with a
        partial key.

        Raises:
            MalformedDeltaPayload: If the invariant does not hold
        """
        if self.action not in ACTIONS:
            raise MalformedDeltaPayload(f"unknown action: {self.action!r}", delta_id=self.id)
        needs_old = self.action in (UPDATE, DELETE)
        needs_new = self.action in (INSERT, UPDATE)
        if needs_old and self.old_data is None:
            raise MalformedDeltaPayload(f"{self.action} delta has no old_data", delta_id=self.id)
        if needs_new and self.new_data is None:
            raise MalformedDeltaPayload(f"{self.action} delta has no new_data", delta_id=self.id)
        if not needs_old and self.old_data is not None:
            raise MalformedDeltaPayload(f"{self.action} delta must not carry old_data", delta_id=self.id)
        if not needs_new and self.new_data is not None:
            raise MalformedDeltaPayload(f"{self.action} delta must not carry new_data", delta_id=self.id)

    def old_row(self) -> Optional[Dict[str, Any]]:
        """Decoded old_data, or None when absent."""
        if self.old_data is None:
            return None
        return codec.decode(self.old_data, delta_id=self.id)

    def new_row(self) -> Optional[Dict[str, Any]]:
        """Decoded new_data, or None when absent."""
        if self.new_data is None:
            return None
        return codec.decode(self.new_data, delta_id=self.id)

    def with_id(self, delta_id: int, timestamp: datetime) -> "Delta":
        return replace(self, id=delta_id, timestamp=timestamp)

    def sort_key(self) -> Tuple[datetime, int]:
        """Total replay order: capture time, then id."""
        ts = to_utc(self.timestamp) if self.timestamp is not None else _EPOCH
        return (ts, self.id or 0)

    def to_dict(self, decoded: bool = True) -> Dict[str, Any]:
        """Serialize for display; payloads decoded unless decoded=False."""
        return {
            "id": self.id,
            "action": self.action,
            "table_name": self.table_name,
            "old_data": self.old_row() if decoded else self.old_data,
            "new_data": self.new_row() if decoded else self.new_data,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
