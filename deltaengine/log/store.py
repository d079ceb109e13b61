"""
DeltaLog abstract interface.

Defines contract for delta log implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional

from ..core.delta import Delta


class DeltaLog(ABC):
    """
    Abstract delta log interface.

    All implementations must guarantee:
    - Append-only (the only removal is an explicit operator drop)
    - Total order on read: timestamp ascending, ties broken by id ascending
    - Monotonically increasing ids, assigned on append
    """

    @abstractmethod
    def create(self) -> None:
        """Create backing storage if it does not exist."""
        ...

    @abstractmethod
    def append(self, delta: Delta, connection: Optional[Any] = None) -> Delta:
        """
        Append delta to log.

        Args:
            delta: Delta to append (id assigned, timestamp defaulted to now)
            connection: Optional open transaction to write through, making the
                append atomic with the caller's own writes

        Returns:
            Stored delta with id and timestamp

        Raises:
            MalformedDeltaPayload: If the delta violates its action invariant
            DeltaLogError: If append fails
        """
        ...

    @abstractmethod
    def read(self, table_name: Optional[str] = None, until: Optional[datetime] = None) -> Iterator[Delta]:
        """
        Read deltas in replay order.

        Args:
            table_name: Filter by table (None = all)
            until: Only deltas captured at or before this instant (None = all)

        Yields:
            Deltas ordered by (timestamp, id)

        Implementations are generators; closing one early releases whatever
        the read holds open.
        """
        ...

    @abstractmethod
    def get(self, delta_id: int) -> Optional[Delta]:
        """Return one delta by id, or None."""
        ...

    @abstractmethod
    def drop(self, delta_ids: Iterable[int]) -> int:
        """
        Remove deltas before replay (operator edit).

        Returns:
            Number of deltas removed
        """
        ...

    def count(self, table_name: Optional[str] = None) -> int:
        """
        Number of deltas in log.

        Implementations may override with a cheaper query.
        """
        return sum(1 for _ in self.read(table_name=table_name))
