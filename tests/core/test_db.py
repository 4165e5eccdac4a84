"""Tests for Database construction and connection parameters."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from finbutler.db import Database, db_params_from_env
from finbutler.errors import InfrastructureError

pytestmark = pytest.mark.unit

_PG_VARS = (
    "DATABASE_URL",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_SSLMODE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for var in _PG_VARS:
        monkeypatch.delenv(var, raising=False)


class TestParamsFromEnv:
    def test_defaults(self):
        assert db_params_from_env() == {
            "host": "localhost",
            "port": 5432,
            "user": "finbutler",
            "password": "finbutler",
            "ssl": None,
        }

    def test_database_url_wins(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://app:secret@db:6543/x?sslmode=Require")
        monkeypatch.setenv("POSTGRES_HOST", "ignored")
        params = db_params_from_env()
        assert params["host"] == "db"
        assert params["port"] == 6543
        assert params["user"] == "app"
        assert params["ssl"] == "require"

    def test_postgres_vars(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("POSTGRES_HOST", "pg")
        monkeypatch.setenv("POSTGRES_PORT", "5555")
        monkeypatch.setenv("POSTGRES_SSLMODE", "bogus")
        params = db_params_from_env()
        assert params["host"] == "pg"
        assert params["port"] == 5555
        assert params["ssl"] is None


class TestDatabase:
    def test_invalid_schema_rejected(self):
        with pytest.raises(ValueError, match="Invalid schema name"):
            Database("finbutler", schema="bad-schema")

    def test_blank_schema_is_none(self):
        assert Database("finbutler", schema="  ").schema is None

    def test_dsn(self):
        db = Database("ledger", host="h", port=1, user="u", password="p")
        assert db.dsn == "postgresql://u:p@h:1/ledger"

    def test_require_pool_before_connect(self):
        with pytest.raises(InfrastructureError, match="no active connection pool"):
            Database("ledger").require_pool()

    async def test_connect_pins_search_path(self):
        pool = MagicMock()
        pool.close = AsyncMock()
        with patch("finbutler.db.asyncpg.create_pool", new=AsyncMock(return_value=pool)) as create:
            db = Database("ledger", schema="finance", ssl="require")
            assert await db.connect() is pool

        kwargs = create.call_args.kwargs
        assert kwargs["database"] == "ledger"
        assert kwargs["server_settings"] == {"search_path": "finance,public"}
        assert kwargs["ssl"] == "require"

        await db.close()
        pool.close.assert_awaited_once()
        assert db.pool is None

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("POSTGRES_USER", "me")
        db = Database.from_env("ledger", schema="finance")
        assert db.user == "me"
        assert db.schema == "finance"
        assert db.ssl is None
