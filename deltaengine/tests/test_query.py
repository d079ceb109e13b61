"""
Tests for query helpers and in-memory projection.
"""

import pytest

from deltaengine.core.delta import DELETE, INSERT, UPDATE, Delta
from deltaengine.core.errors import ApplyError
from deltaengine.log import MemoryDeltaLog
from deltaengine.query import project, row_history, summarize
from deltaengine.replay import replay

from .helpers import at, rows


def _log():
    log = MemoryDeltaLog()
    events = [
        (INSERT, None, {"id": 1, "name": "A", "age": 5}),
        (INSERT, None, {"id": 2, "name": "B", "age": 7}),
        (UPDATE, {"id": 2, "name": "B", "age": 7}, {"id": 2, "name": "B", "age": 9}),
        (DELETE, {"id": 1, "name": "A", "age": 5}, None),
    ]
    for i, (action, old, new) in enumerate(events):
        log.append(Delta.capture(action, "people", old_row=old, new_row=new, timestamp=at(i)))
    return log


def test_project_matches_database_replay(target):
    log = _log()

    state = project(log.read())
    replay(log, target)

    assert state == {"people": {2: {"id": 2, "name": "B", "age": 9}}}
    assert [(r["id"], r["name"], r["age"]) for r in state["people"].values()] == rows(target)


def test_project_is_pure():
    """Same input, same output; the log is not modified."""
    log = _log()

    assert project(log.read()) == project(log.read())
    assert log.count() == 4


def test_project_rejects_duplicate_insert():
    log = _log()
    log.append(Delta.capture(INSERT, "people", new_row={"id": 2, "name": "X", "age": 1}, timestamp=at(10)))

    with pytest.raises(ApplyError, match="duplicate"):
        project(log.read())


def test_project_strict_and_lenient_on_missing_row():
    deltas = [Delta.capture(DELETE, "people", old_row={"id": 3, "name": "C", "age": 1}, timestamp=at(0))]

    with pytest.raises(ApplyError):
        project(deltas)
    assert project(deltas, strict=False) == {"people": {}}


def test_summarize():
    summary = summarize(_log().read())

    assert summary == {
        "total": 4,
        "actions": {INSERT: 2, UPDATE: 1, DELETE: 1},
        "tables": {"people": 4},
    }


def test_row_history_follows_key_changes():
    log = _log()
    log.append(
        Delta.capture(
            UPDATE,
            "people",
            old_row={"id": 2, "name": "B", "age": 9},
            new_row={"id": 20, "name": "B", "age": 9},
            timestamp=at(10),
        )
    )

    assert [d.action for d in row_history(log, "people", 2)] == [INSERT, UPDATE, UPDATE]
    assert [d.action for d in row_history(log, "people", 20)] == [UPDATE]
    assert row_history(log, "people", 99) == []
