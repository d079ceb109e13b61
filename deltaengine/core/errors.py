"""
Exception types for the delta capture and replay engine.
"""

from typing import Optional


class DeltaError(Exception):
    """Base class for all engine errors."""
    pass


class DatabaseConnectionError(DeltaError):
    """Raised when the source or target database cannot be reached."""
    pass


class InstallationError(DeltaError):
    """Raised when a capture hook or its backing function cannot be created."""

    def __init__(self, message: str, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.table = table


class MalformedDeltaPayload(DeltaError):
    """Raised when a delta payload cannot be decoded or violates its action."""

    def __init__(self, message: str, delta_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.delta_id = delta_id


class TargetTableMissing(DeltaError):
    """
    Raised when a delta names a table absent from the target.

    Not a failure: the replay engine catches it and skips the delta.
    """

    def __init__(self, table: str) -> None:
        super().__init__(f"target table does not exist: {table}")
        self.table = table


class ApplyError(DeltaError):
    """Raised when the target database rejects an insert, update or delete."""

    def __init__(self, message: str, delta_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.delta_id = delta_id


class DeltaLogError(DeltaError):
    """Raised when delta log storage operations fail."""
    pass
