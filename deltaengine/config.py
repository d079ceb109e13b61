"""
Runtime settings read from the environment.

Environment Variables:
    DELTA_SOURCE_URL: Database whose tables are captured (required)
    DELTA_TARGET_URL: Restored database; defaults to <source db>_restored
    DELTA_LOG_TABLE: Delta log table name - default: deltas
    DELTA_ROW_SCHEMA: Row shape as name:kind pairs - default: id:integer,name:text,age:integer
    DELTA_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR - default: INFO
    DELTA_LOG_FORMAT: json, text - default: json
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

import sqlalchemy as sa

from .core.naming import is_safe_identifier
from .core.schema import DEFAULT_ROW_SCHEMA, RowSchema

DEFAULT_LOG_TABLE = "deltas"
RESTORED_SUFFIX = "_restored"


def restored_url(source_url: str) -> str:
    """
    Derive the restored database URL from the source URL.

    postgresql+psycopg://u@h/shop -> postgresql+psycopg://u@h/shop_restored
    sqlite:///data/shop.db        -> sqlite:///data/shop_restored.db
    """
    url = sa.engine.make_url(source_url)
    database = url.database or ""
    if not database or database == ":memory:":
        raise ValueError("cannot derive a restored database from an unnamed source database")
    if url.get_backend_name() == "sqlite":
        root, ext = os.path.splitext(database)
        return url.set(database=f"{root}{RESTORED_SUFFIX}{ext}").render_as_string(hide_password=False)
    return url.set(database=f"{database}{RESTORED_SUFFIX}").render_as_string(hide_password=False)


@dataclass(frozen=True)
class Settings:
    """
    Resolved configuration for capture and replay runs.

    Fields:
        target_derived: True when target_url was computed from source_url
            rather than given explicitly
    """

    source_url: str
    target_url: str
    log_table: str = DEFAULT_LOG_TABLE
    row_schema: RowSchema = DEFAULT_ROW_SCHEMA
    log_level: str = "INFO"
    log_format: str = "json"
    target_derived: bool = False

    @classmethod
    def resolve(
        cls,
        source_url: Optional[str],
        target_url: Optional[str] = None,
        log_table: Optional[str] = None,
        row_schema: Optional[str] = None,
        log_level: Optional[str] = None,
        log_format: Optional[str] = None,
    ) -> "Settings":
        """
        Build validated settings from raw values; blank values take defaults.

        Raises:
            ValueError: If a value is missing or invalid
        """
        source_url = (source_url or "").strip()
        target_url = (target_url or "").strip()
        derived = bool(source_url and not target_url)
        if derived:
            target_url = restored_url(source_url)
        schema_text = (row_schema or "").strip()
        instance = cls(
            source_url=source_url,
            target_url=target_url,
            log_table=(log_table or "").strip() or DEFAULT_LOG_TABLE,
            row_schema=RowSchema.parse(schema_text) if schema_text else DEFAULT_ROW_SCHEMA,
            log_level=(log_level or "INFO").upper(),
            log_format=(log_format or "json").lower(),
            target_derived=derived,
        )
        instance.validate()
        return instance

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls.resolve(
            env.get("DELTA_SOURCE_URL"),
            target_url=env.get("DELTA_TARGET_URL"),
            log_table=env.get("DELTA_LOG_TABLE"),
            row_schema=env.get("DELTA_ROW_SCHEMA"),
            log_level=env.get("DELTA_LOG_LEVEL"),
            log_format=env.get("DELTA_LOG_FORMAT"),
        )

    def validate(self) -> None:
        if not self.source_url:
            raise ValueError("DELTA_SOURCE_URL is required")
        if not self.target_url:
            raise ValueError("DELTA_TARGET_URL could not be determined")
        if not is_safe_identifier(self.log_table):
            raise ValueError(f"DELTA_LOG_TABLE is not a valid table name: {self.log_table!r}")
        if self.log_format not in ("json", "text"):
            raise ValueError("DELTA_LOG_FORMAT must be one of: json, text")
