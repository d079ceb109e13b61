"""
Tests for the row schema descriptor and identifier rules.
"""

import types

import pytest
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from deltaengine.capture.dialects import PostgresCapture
from deltaengine.core.errors import InstallationError, MalformedDeltaPayload
from deltaengine.core.naming import (
    action_trigger_name,
    check_table_name,
    function_name,
    is_safe_identifier,
    table_from_trigger,
    trigger_name,
)
from deltaengine.core.schema import BOOLEAN, DEFAULT_ROW_SCHEMA, INTEGER, TEXT, Column, RowSchema


def test_default_schema_shape():
    assert DEFAULT_ROW_SCHEMA.names == ("id", "name", "age")
    assert DEFAULT_ROW_SCHEMA.key == "id"
    assert [c.name for c in DEFAULT_ROW_SCHEMA.fields] == ["name", "age"]
    assert DEFAULT_ROW_SCHEMA.describe() == "id:integer,name:text,age:integer"


def test_parse():
    schema = RowSchema.parse("id:integer, title:TEXT ,done:boolean")

    assert schema.columns == (Column("id", INTEGER), Column("title", TEXT), Column("done", BOOLEAN))


@pytest.mark.parametrize("text", ["id", "id:float", "name:text", "id:integer,id:text"])
def test_parse_rejects_bad_descriptions(text):
    with pytest.raises(ValueError):
        RowSchema.parse(text)


def test_validate_accepts_matching_row():
    row = {"id": 1, "name": None, "age": 30}

    assert DEFAULT_ROW_SCHEMA.validate(row) is row


@pytest.mark.parametrize(
    "row",
    [
        {"id": 1, "name": "A"},
        {"id": 1, "name": "A", "age": 3, "email": "a@x"},
        {"id": None, "name": "A", "age": 3},
        {"id": "1", "name": "A", "age": 3},
        {"id": 1, "name": 5, "age": 3},
        {"id": True, "name": "A", "age": 3},
    ],
)
def test_validate_rejects_mismatched_rows(row):
    with pytest.raises(MalformedDeltaPayload):
        DEFAULT_ROW_SCHEMA.validate(row, delta_id=1)


def test_boolean_kind_rejects_integers():
    schema = RowSchema.parse("id:integer,active:boolean")

    schema.validate({"id": 1, "active": True})
    with pytest.raises(MalformedDeltaPayload):
        schema.validate({"id": 1, "active": 1})


def test_to_table_keys_on_identifier():
    table = DEFAULT_ROW_SCHEMA.to_table("people", sa.MetaData())

    assert [c.name for c in table.primary_key.columns] == ["id"]
    assert table.c.name.nullable


def test_safe_identifiers():
    assert is_safe_identifier("people")
    assert is_safe_identifier("_audit2")
    assert not is_safe_identifier("2people")
    assert not is_safe_identifier("people; DROP TABLE deltas")
    assert not is_safe_identifier('people"')
    assert not is_safe_identifier("")


def test_check_table_name_requires_allow_list_membership():
    assert check_table_name("people", ["people", "orders"]) == "people"
    with pytest.raises(ValueError, match="unknown table"):
        check_table_name("ghosts", ["people"])
    with pytest.raises(ValueError, match="invalid table name"):
        check_table_name("x y", ["x y"])


def test_generated_names():
    assert function_name("people") == "log_people_changes"
    assert trigger_name("people") == "people_trigger"
    assert action_trigger_name("people", "UPDATE") == "people_trigger_update"
    assert table_from_trigger("people_trigger") == "people"
    assert table_from_trigger("people_trigger_delete") == "people"
    assert table_from_trigger("audit_people") == ""


def _pg_conn():
    return types.SimpleNamespace(dialect=postgresql.dialect())


def test_postgres_hook_statements():
    statements = PostgresCapture().install_statements(_pg_conn(), "people", "deltas")

    assert "CREATE OR REPLACE FUNCTION log_people_changes()" in statements[0]
    assert "INSERT INTO deltas" in statements[0]
    assert "row_to_json(OLD)::jsonb" in statements[0]
    assert statements[1] == "DROP TRIGGER IF EXISTS people_trigger ON people"
    assert statements[2].startswith("CREATE TRIGGER people_trigger AFTER INSERT OR UPDATE OR DELETE ON people")


def test_postgres_uninstall_statements():
    statements = PostgresCapture().uninstall_statements(_pg_conn(), "people")

    assert statements == [
        "DROP TRIGGER IF EXISTS people_trigger ON people",
        "DROP FUNCTION IF EXISTS log_people_changes()",
    ]


def test_postgres_rejects_overlong_generated_names():
    """PostgreSQL would silently truncate, breaking the naming convention."""
    table = "t" * 55

    with pytest.raises(InstallationError) as exc_info:
        PostgresCapture().install_statements(_pg_conn(), table, "deltas")

    assert exc_info.value.table == table
