"""
Tests for settings and restored database naming.
"""

import pytest

from deltaengine.config import Settings, restored_url
from deltaengine.core.schema import DEFAULT_ROW_SCHEMA


def test_restored_url_postgres():
    url = restored_url("postgresql+psycopg://app:secret@db:5432/shop")

    assert url == "postgresql+psycopg://app:secret@db:5432/shop_restored"


def test_restored_url_sqlite():
    assert restored_url("sqlite:///data/shop.db") == "sqlite:///data/shop_restored.db"


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
def test_restored_url_needs_named_database(url):
    with pytest.raises(ValueError):
        restored_url(url)


def test_settings_from_env_defaults():
    settings = Settings.from_env({"DELTA_SOURCE_URL": "sqlite:///shop.db"})

    assert settings.target_url == "sqlite:///shop_restored.db"
    assert settings.log_table == "deltas"
    assert settings.row_schema == DEFAULT_ROW_SCHEMA
    assert settings.log_level == "INFO"
    assert settings.log_format == "json"


def test_settings_from_env_overrides():
    settings = Settings.from_env(
        {
            "DELTA_SOURCE_URL": "sqlite:///shop.db",
            "DELTA_TARGET_URL": "sqlite:///elsewhere.db",
            "DELTA_LOG_TABLE": "audit_log",
            "DELTA_ROW_SCHEMA": "id:integer,title:text",
            "DELTA_LOG_LEVEL": "debug",
            "DELTA_LOG_FORMAT": "TEXT",
        }
    )

    assert settings.target_url == "sqlite:///elsewhere.db"
    assert settings.log_table == "audit_log"
    assert settings.row_schema.names == ("id", "title")
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "text"


@pytest.mark.parametrize(
    "env",
    [
        {},
        {"DELTA_SOURCE_URL": "sqlite:///shop.db", "DELTA_LOG_TABLE": "bad name"},
        {"DELTA_SOURCE_URL": "sqlite:///shop.db", "DELTA_LOG_FORMAT": "xml"},
    ],
)
def test_settings_rejects_invalid_env(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)


def test_resolve_marks_derived_target():
    derived = Settings.resolve("sqlite:///shop.db")
    explicit = Settings.resolve("sqlite:///shop.db", target_url="sqlite:///other.db")

    assert derived.target_derived
    assert derived.target_url == "sqlite:///shop_restored.db"
    assert not explicit.target_derived
    assert explicit.target_url == "sqlite:///other.db"


def test_resolve_blank_values_take_defaults():
    settings = Settings.resolve("sqlite:///shop.db", target_url="  ", log_table="", row_schema="")

    assert settings.target_derived
    assert settings.log_table == "deltas"
    assert settings.row_schema == DEFAULT_ROW_SCHEMA
