"""Tests for core.config.Settings and DataSource.from_settings."""

import pytest
from pydantic import ValidationError

from sqlbind.core.config import Settings
from sqlbind.models import DataSource, ProductTypeEnum


def test_settings_read_prefixed_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLBIND_DB_PRODUCT_TYPE", "postgres")
    monkeypatch.setenv("SQLBIND_DB_HOST", "db.internal")
    monkeypatch.setenv("SQLBIND_DB_PORT", "6543")
    monkeypatch.setenv("SQLBIND_DEBUG_TRACE", "true")
    monkeypatch.setenv("SQLBIND_DB_STATEMENT_TIMEOUT", "2.5")

    s = Settings(_env_file=None)

    assert s.DB_PRODUCT_TYPE == "postgres"
    assert s.DB_HOST == "db.internal"
    assert s.DB_PORT == 6543
    assert s.DEBUG_TRACE is True
    assert s.DB_STATEMENT_TIMEOUT == 2.5


def test_settings_empty_env_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLBIND_DB_PORT", "")
    s = Settings(_env_file=None)
    assert s.DB_PORT is None
    assert s.CONNECTION_PING_IDLE_SECONDS == 30.0


def test_settings_reject_bad_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLBIND_DB_CONNECT_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_datasource_from_settings() -> None:
    s = Settings(
        _env_file=None,
        DB_PRODUCT_TYPE=" MySQL ",
        DB_HOST="h",
        DB_NAME="app",
        DB_USER="u",
        DB_PASSWORD="p",
    )
    ds = DataSource.from_settings(s)
    assert ds.product_type is ProductTypeEnum.MYSQL
    assert ds.database == "app"
    assert ds.resolved_port == 3306


def test_datasource_explicit_port() -> None:
    ds = DataSource(product_type="postgres", database="app", port=6000)
    assert ds.product_type is ProductTypeEnum.POSTGRES
    assert ds.resolved_port == 6000
