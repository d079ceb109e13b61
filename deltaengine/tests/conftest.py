"""
Shared fixtures: SQLite file databases standing in for source and target.
"""

import pytest

from .helpers import PEOPLE_DDL, make_db


@pytest.fixture
def source(tmp_path):
    engine = make_db(tmp_path / "shop.db", PEOPLE_DDL)
    yield engine
    engine.dispose()


@pytest.fixture
def target(tmp_path):
    engine = make_db(tmp_path / "shop_restored.db", PEOPLE_DDL)
    yield engine
    engine.dispose()


@pytest.fixture
def empty_target(tmp_path):
    engine = make_db(tmp_path / "empty_restored.db")
    yield engine
    engine.dispose()
