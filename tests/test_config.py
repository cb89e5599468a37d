"""Tests for environment settings."""

import pytest

from cashify.config import DEFAULT_LOCK_TIMEOUT, Settings, default_database_path


def test_defaults(tmp_path):
    settings = Settings.from_env({"CASHIFY_DB_PATH": str(tmp_path / "x.db")})

    assert settings.database_url == f"sqlite:///{tmp_path / 'x.db'}"
    assert settings.lock_timeout == DEFAULT_LOCK_TIMEOUT
    assert settings.log_level == "WARNING"
    assert settings.log_format == "json"


def test_explicit_path_wins():
    settings = Settings.from_env(
        {"CASHIFY_DATABASE_URL": "postgresql://db/cashify"}, database_path="/tmp/a.db"
    )
    assert settings.database_url == "sqlite:////tmp/a.db"


def test_database_url_from_environment():
    settings = Settings.from_env({"CASHIFY_DATABASE_URL": "postgresql://db/cashify"})
    assert settings.database_url == "postgresql://db/cashify"


def test_overrides():
    settings = Settings.from_env(
        {
            "CASHIFY_DB_PATH": "/tmp/a.db",
            "CASHIFY_LOCK_TIMEOUT": "0.25",
            "CASHIFY_LOG_LEVEL": "debug",
            "CASHIFY_LOG_FORMAT": "TEXT",
        }
    )

    assert settings.lock_timeout == 0.25
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "text"


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_invalid_lock_timeout(value):
    with pytest.raises(ValueError, match="CASHIFY_LOCK_TIMEOUT"):
        Settings.from_env({"CASHIFY_DB_PATH": "/tmp/a.db", "CASHIFY_LOCK_TIMEOUT": value})


def test_default_database_path_under_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))

    assert default_database_path({}) == str(tmp_path / ".cashify" / "cashify.db")
    assert (tmp_path / ".cashify").is_dir()
