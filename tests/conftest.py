"""
Pytest configuration and shared fixtures.

Provides:
- In-memory SQLite engine shared across threads (StaticPool)
- ``database``: sync-engine database handle with a ``users`` table
- ``client``: FastAPI TestClient whose data route runs against ``database``
- ``anyio_backend``: run ``@pytest.mark.anyio`` tests on asyncio only
"""

from __future__ import annotations

import os
import sys
from collections.abc import Generator
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

# Add app to path for imports
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Set test environment variables before importing app
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL_APP", "sqlite://")
os.environ.setdefault("METRICS_TOKEN", "test-metrics-token")
os.environ.setdefault("OBSERVABILITY_STRUCTURED_LOGS", "false")

import pytest  # noqa: E402 (import after env setup)
from fastapi.testclient import TestClient  # noqa: E402 (import after env setup)
from sqlalchemy import create_engine, text  # noqa: E402 (import after env setup)
from sqlalchemy.engine import Engine  # noqa: E402 (import after env setup)
from sqlalchemy.pool import StaticPool  # noqa: E402 (import after env setup)

from app.core.dependencies import get_database  # noqa: E402 (import after env setup)
from app.db.database import EngineDatabase  # noqa: E402 (import after env setup)
from app.main import create_app  # noqa: E402 (import after env setup)

USERS_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    age INTEGER,
    password TEXT,
    passwordSalt TEXT
)
"""


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def sqlite_engine() -> Generator[Engine]:
    """Fresh in-memory SQLite database with a ``users`` table."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(text(USERS_DDL))
    yield engine
    engine.dispose()


@pytest.fixture
def database(sqlite_engine: Engine) -> EngineDatabase:
    return EngineDatabase(sqlite_engine)


@pytest.fixture
def app(database: EngineDatabase):
    application = create_app()
    application.dependency_overrides[get_database] = lambda: database
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fetch_rows(sqlite_engine: Engine):
    """Read rows straight from the engine, bypassing the data route."""

    def _fetch(sql: str) -> list[dict]:
        with sqlite_engine.connect() as conn:
            return [dict(row) for row in conn.execute(text(sql)).mappings()]

    return _fetch
