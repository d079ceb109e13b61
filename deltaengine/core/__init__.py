"""
Core delta primitives.

This module provides the foundational abstractions for capture and replay:
- Delta: Immutable row mutation record
- Codec: Canonical JSON encoding of row snapshots
- RowSchema: Fixed, injected row shape shared by capture and replay
- Naming: Identifier checks and generated hook names
"""

from .delta import Delta, INSERT, UPDATE, DELETE, ACTIONS, to_utc
from .codec import encode, decode, canonicalize, canonical_json_str, canonical_json_bytes
from .schema import Column, RowSchema, DEFAULT_ROW_SCHEMA, TEXT, INTEGER, BOOLEAN
from .errors import (
    DeltaError,
    DatabaseConnectionError,
    InstallationError,
    MalformedDeltaPayload,
    TargetTableMissing,
    ApplyError,
    DeltaLogError,
)

__all__ = [
    "Delta",
    "INSERT",
    "UPDATE",
    "DELETE",
    "ACTIONS",
    "to_utc",
    "encode",
    "decode",
    "canonicalize",
    "canonical_json_str",
    "canonical_json_bytes",
    "Column",
    "RowSchema",
    "DEFAULT_ROW_SCHEMA",
    "TEXT",
    "INTEGER",
    "BOOLEAN",
    "DeltaError",
    "DatabaseConnectionError",
    "InstallationError",
    "MalformedDeltaPayload",
    "TargetTableMissing",
    "ApplyError",
    "DeltaLogError",
]
