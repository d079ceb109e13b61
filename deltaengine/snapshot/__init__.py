"""
Table snapshot export/import (JSON files).
"""

from .tables import snapshot_path, export_table, import_table, backup_and_restore

__all__ = [
    "snapshot_path",
    "export_table",
    "import_table",
    "backup_and_restore",
]
