"""Tests for engine creation and reuse."""

from unittest.mock import patch

import pytest

import app.core.db
from app.core.db import _pool_kwargs, get_async_engine, get_engine, reset_async_engine


@pytest.fixture
def fresh_engines():
    app.core.db._engine = None
    app.core.db._async_engine = None
    yield
    if app.core.db._engine is not None:
        app.core.db._engine.dispose()
    app.core.db._engine = None
    app.core.db._async_engine = None


class TestGetEngine:
    @pytest.mark.anyio
    async def test_get_engine_uses_sync_url(self, fresh_engines):
        with patch("app.core.db.settings") as mock_settings:
            mock_settings.sync_url = "sqlite://"
            mock_settings.database_echo = False

            engine = get_engine()

        assert engine.dialect.name == "sqlite"
        assert engine.dialect.driver == "pysqlite"

    @pytest.mark.anyio
    async def test_get_engine_reuses_existing(self, fresh_engines):
        with patch("app.core.db.settings") as mock_settings:
            mock_settings.sync_url = "sqlite://"
            mock_settings.database_echo = False

            assert get_engine() is get_engine()

    @pytest.mark.anyio
    async def test_missing_url(self, fresh_engines):
        with patch("app.core.db.settings") as mock_settings:
            mock_settings.sync_url = ""

            with pytest.raises(RuntimeError, match="DATABASE_URL_APP"):
                get_engine()


class TestGetAsyncEngine:
    @pytest.mark.anyio
    async def test_async_engine_and_reset(self, fresh_engines):
        with patch("app.core.db.settings") as mock_settings:
            mock_settings.async_url = "sqlite+aiosqlite://"
            mock_settings.database_echo = False

            engine = get_async_engine()
            assert engine is get_async_engine()
            assert engine.dialect.driver == "aiosqlite"

        await reset_async_engine()

        assert app.core.db._async_engine is None

    @pytest.mark.anyio
    async def test_reset_without_engine(self, fresh_engines):
        await reset_async_engine()

        assert app.core.db._async_engine is None


class TestPoolKwargs:
    def test_sqlite_uses_defaults(self):
        assert _pool_kwargs("sqlite+aiosqlite://") == {}

    def test_server_databases_get_a_sized_pool(self):
        kwargs = _pool_kwargs("mysql+aiomysql://u:p@db/app")

        assert kwargs["pool_size"] == 20
        assert kwargs["max_overflow"] == 10
        assert kwargs["pool_recycle"] == 3600
