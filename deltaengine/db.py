"""
Database handles.

Engines are created explicitly and passed to each component; nothing here is
process-global, so several source/target pairs can coexist.
"""

import logging
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from .core.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)


def connect(url: str, **engine_kwargs) -> Engine:
    """
    Create an engine and verify it can reach the database.

    Args:
        url: SQLAlchemy URL (postgresql+psycopg://..., sqlite:///...)
        **engine_kwargs: Passed through to sqlalchemy.create_engine

    Returns:
        Connected Engine

    Raises:
        DatabaseConnectionError: If the URL is unusable or the server is unreachable
    """
    engine_kwargs.setdefault("pool_pre_ping", True)
    try:
        engine = sa.create_engine(url, **engine_kwargs)
    except (sa.exc.ArgumentError, ImportError) as ex:
        raise DatabaseConnectionError(f"cannot create engine for {_safe_url(url)}: {ex}") from ex
    try:
        with engine.connect():
            pass
    except sa.exc.SQLAlchemyError as ex:
        engine.dispose()
        raise DatabaseConnectionError(f"cannot connect to {_safe_url(url)}: {ex}") from ex
    logger.debug("Connected to %s", _safe_url(url))
    return engine


def _safe_url(url: str) -> str:
    try:
        return sa.engine.make_url(url).render_as_string(hide_password=True)
    except sa.exc.ArgumentError:
        return "<invalid url>"


def list_tables(engine: Engine, schema: Optional[str] = None) -> List[str]:
    """
    Enumerate tables in the given (or default) schema, sorted.

    Raises:
        DatabaseConnectionError: If the catalog cannot be read
    """
    try:
        return sorted(sa.inspect(engine).get_table_names(schema=schema))
    except sa.exc.SQLAlchemyError as ex:
        raise DatabaseConnectionError(f"failed to fetch table names: {ex}") from ex


def ensure_database(engine: Engine, name: str) -> bool:
    """
    Create database `name` on the server behind `engine` if it is missing.

    Only meaningful on PostgreSQL; other dialects create databases on first
    connect and are left alone.

    Returns:
        True if the database was created

    Raises:
        DatabaseConnectionError: If the server rejects the lookup or creation
    """
    if engine.dialect.name != "postgresql":
        return False
    try:
        with engine.connect() as conn:
            exists = conn.execute(
                sa.text("SELECT EXISTS (SELECT 1 FROM pg_database WHERE datname = :name)"),
                {"name": name},
            ).scalar()
        if exists:
            logger.info("Database %s already exists, skipping creation", name)
            return False
        quoted = engine.dialect.identifier_preparer.quote(name)
        # CREATE DATABASE cannot run inside a transaction block
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            conn.exec_driver_sql(f"CREATE DATABASE {quoted}")
    except sa.exc.SQLAlchemyError as ex:
        raise DatabaseConnectionError(f"failed to create database {name}: {ex}") from ex
    logger.info("Database %s created", name)
    return True
