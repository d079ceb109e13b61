"""
Helpers shared by the test modules.
"""

from datetime import datetime, timedelta, timezone

from deltaengine.db import connect

PEOPLE_DDL = "CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)"

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    """Fixed capture time, `seconds` after T0."""
    return T0 + timedelta(seconds=seconds)


def make_db(path, *ddl):
    engine = connect(f"sqlite:///{path}")
    with engine.begin() as conn:
        for statement in ddl:
            conn.exec_driver_sql(statement)
    return engine


def execute(engine, *statements):
    """Run statements in one transaction."""
    with engine.begin() as conn:
        for statement in statements:
            conn.exec_driver_sql(statement)


def rows(engine, table="people"):
    with engine.connect() as conn:
        result = conn.exec_driver_sql(f"SELECT id, name, age FROM {table} ORDER BY id")
        return [tuple(r) for r in result]
