"""
Structural identifier rules and generated object names.

Table names end up in statement text (trigger bodies, DDL), so they are held
to a strict pattern and to membership in an enumerated table set before use.
Hook names derive from the table name alone so operator tooling can find and
remove them later.
"""

import re
from typing import Collection

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# PostgreSQL NAMEDATALEN - 1
POSTGRES_MAX_IDENTIFIER = 63

TRIGGER_SUFFIX = "_trigger"


def is_safe_identifier(name: str) -> bool:
    return isinstance(name, str) and bool(IDENTIFIER_RE.match(name))


def check_table_name(name: str, allowed: Collection[str]) -> str:
    """
    Validate a table name against the identifier pattern and an allow-list.

    Args:
        name: Table name to check
        allowed: Previously enumerated table names

    Returns:
        The name, unchanged

    Raises:
        ValueError: If the name is malformed or not in the allow-list
    """
    if not is_safe_identifier(name):
        raise ValueError(f"invalid table name: {name!r}")
    if name not in allowed:
        raise ValueError(f"unknown table: {name!r}")
    return name


def function_name(table: str) -> str:
    """Backing function of the capture hook (PostgreSQL)."""
    return f"log_{table}_changes"


def trigger_name(table: str) -> str:
    """Capture hook on `table`."""
    return f"{table}{TRIGGER_SUFFIX}"


def action_trigger_name(table: str, action: str) -> str:
    """Per-action hook for dialects without multi-event triggers (SQLite)."""
    return f"{trigger_name(table)}_{action.lower()}"


def table_from_trigger(name: str) -> str:
    """
    Recover the tracked table name from a generated hook name.

    Returns "" when the name does not follow the convention.
    """
    for suffix in ("_insert", "_update", "_delete"):
        if name.endswith(TRIGGER_SUFFIX + suffix):
            return name[: -len(TRIGGER_SUFFIX + suffix)]
    if name.endswith(TRIGGER_SUFFIX):
        return name[: -len(TRIGGER_SUFFIX)]
    return ""
