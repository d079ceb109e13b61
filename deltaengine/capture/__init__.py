"""
Change capture: row-level hooks that feed the delta log.
"""

from .installer import install, uninstall, installed_tables
from .dialects import CaptureDialect, PostgresCapture, SqliteCapture, dialect_for

__all__ = [
    "install",
    "uninstall",
    "installed_tables",
    "CaptureDialect",
    "PostgresCapture",
    "SqliteCapture",
    "dialect_for",
]
