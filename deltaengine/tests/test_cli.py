"""
Tests for the deltactl command-line tool.
"""

import json

import pytest
from typer.testing import CliRunner

from deltacli.main import app
from deltaengine.db import connect

from .helpers import execute, rows

runner = CliRunner()


def invoke(*args):
    return runner.invoke(app, ["--log-level", "ERROR", "--log-format", "text", *args])


@pytest.fixture
def source_url(source, tmp_path):
    return f"sqlite:///{tmp_path / 'shop.db'}"


def test_version():
    result = invoke("version")

    assert result.exit_code == 0
    assert "deltactl" in result.stdout


def test_install_status_and_uninstall(source, source_url):
    result = invoke("install", "--source", source_url, "--json")
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"installed": ["people"], "log_table": "deltas"}

    result = invoke("status", "--source", source_url, "--json")
    assert json.loads(result.stdout)["tables"] == ["people"]

    result = invoke("uninstall", "--source", source_url, "--json")
    assert json.loads(result.stdout) == {"removed": ["people"]}


def test_install_unknown_table_exits_with_error(source, source_url):
    result = invoke("install", "--source", source_url, "--table", "ghosts", "--json")

    assert result.exit_code == 2
    payload = json.loads(result.stdout)
    assert "ghosts" in payload["error"]
    assert payload["table"] == "ghosts"


def test_source_from_environment(source, source_url):
    result = runner.invoke(
        app, ["--log-level", "ERROR", "install", "--json"], env={"DELTA_SOURCE_URL": source_url}
    )

    assert result.exit_code == 0
    assert json.loads(result.stdout)["installed"] == ["people"]


def test_capture_drop_and_replay(source, source_url, tmp_path):
    invoke("install", "--source", source_url)
    execute(source, "INSERT INTO people (id, name, age) VALUES (1, 'A', 5)")
    execute(source, "INSERT INTO people (id, name, age) VALUES (2, 'B', 7)")
    execute(source, "UPDATE people SET age = 9 WHERE id = 2")
    execute(source, "DELETE FROM people WHERE id = 1")

    result = invoke("log", "tail", "--source", source_url, "--json")
    deltas = json.loads(result.stdout)["deltas"]
    assert [d["action"] for d in deltas] == ["INSERT", "INSERT", "UPDATE", "DELETE"]

    result = invoke("log", "drop", str(deltas[-1]["id"]), "--source", source_url, "--yes", "--json")
    assert json.loads(result.stdout)["removed"] == 1

    result = invoke("replay", "--source", source_url, "--create-missing", "--json")
    assert result.exit_code == 0
    summary = json.loads(result.stdout)
    assert summary["applied"] == 3
    assert summary["tables"] == {"people": 3}

    restored = connect(f"sqlite:///{tmp_path / 'shop_restored.db'}")
    try:
        assert rows(restored) == [(1, "A", 5), (2, "B", 9)]
    finally:
        restored.dispose()


def test_replay_preview_leaves_target_alone(source, source_url, tmp_path):
    invoke("install", "--source", source_url)
    execute(source, "INSERT INTO people (id, name, age) VALUES (1, 'A', 5)")

    result = invoke("replay", "--source", source_url, "--preview", "--json")

    assert result.exit_code == 0
    assert json.loads(result.stdout)["tables"] == {"people": [{"id": 1, "name": "A", "age": 5}]}
    assert not (tmp_path / "shop_restored.db").exists()


def test_log_inspect_filters(source, source_url):
    invoke("install", "--source", source_url)
    execute(source, "INSERT INTO people (id, name, age) VALUES (1, 'A', 5)")
    execute(source, "DELETE FROM people WHERE id = 1")

    result = invoke("log", "inspect", "--source", source_url, "--action", "delete", "--payload", "--json")
    payload = json.loads(result.stdout)

    assert payload["count"] == 1
    assert payload["deltas"][0]["old_data"] == {"id": 1, "name": "A", "age": 5}
    assert payload["summary"]["actions"] == {"DELETE": 1}


def test_log_history(source, source_url):
    invoke("install", "--source", source_url)
    execute(source, "INSERT INTO people (id, name, age) VALUES (1, 'A', 5), (2, 'B', 6)")
    execute(source, "UPDATE people SET age = 7 WHERE id = 2")

    result = invoke("log", "history", "people", "2", "--source", source_url, "--json")

    assert [d["action"] for d in json.loads(result.stdout)["deltas"]] == ["INSERT", "UPDATE"]


def test_log_without_install_fails(source, source_url):
    result = invoke("log", "tail", "--source", source_url, "--json")

    assert result.exit_code == 2
    assert "install" in json.loads(result.stdout)["error"]


def test_snapshot_copy(source, source_url, tmp_path):
    execute(source, "INSERT INTO people (id, name, age) VALUES (1, 'A', 5)")
    target_url = f"sqlite:///{tmp_path / 'copy.db'}"

    result = invoke(
        "snapshot", "copy", str(tmp_path / "backup"), "--source", source_url, "--target", target_url, "--json"
    )

    assert result.exit_code == 0
    assert json.loads(result.stdout)["tables"] == {"people": 1}


def test_replay_target_from_environment(source, source_url, tmp_path):
    invoke("install", "--source", source_url)
    execute(source, "INSERT INTO people (id, name, age) VALUES (1, 'A', 5)")
    target_url = f"sqlite:///{tmp_path / 'elsewhere.db'}"

    result = runner.invoke(
        app,
        ["--log-level", "ERROR", "--log-format", "text", "replay", "--create-missing", "--json"],
        env={"DELTA_SOURCE_URL": source_url, "DELTA_TARGET_URL": target_url},
    )

    assert result.exit_code == 0
    assert json.loads(result.stdout)["applied"] == 1
    assert not (tmp_path / "shop_restored.db").exists()
    restored = connect(target_url)
    try:
        assert rows(restored) == [(1, "A", 5)]
    finally:
        restored.dispose()


def test_invalid_log_table_option(source, source_url):
    result = invoke("install", "--source", source_url, "--log-table", "bad name", "--json")

    assert result.exit_code == 2
    assert "DELTA_LOG_TABLE" in json.loads(result.stdout)["error"]
