"""
Engine management.

One lazily created engine per flavour: the async engine backs the request
path (``AsyncEngineDatabase``), the sync engine backs scripts and
``EngineDatabase``. Driver selection happens in ``Settings.async_url`` and
``Settings.sync_url``.
"""

import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_async_engine: AsyncEngine | None = None


def _pool_kwargs(url: str) -> dict[str, Any]:
    # SQLite keeps SQLAlchemy's own pool choice
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10, "pool_timeout": 30, "pool_recycle": 3600}


def _engine_options(url: str) -> dict[str, Any]:
    if not url:
        raise RuntimeError("DATABASE_URL_APP is required")
    return {"pool_pre_ping": True, "echo": settings.database_echo, **_pool_kwargs(url)}


def get_engine() -> Engine:
    """Return the process-wide sync engine, creating it on first use."""
    global _engine

    if _engine is None:
        url = settings.sync_url
        _engine = create_engine(url, **_engine_options(url))
        logger.info("Created sync database engine", extra={"dialect": _engine.dialect.name})
    return _engine


def get_async_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _async_engine

    if _async_engine is None:
        url = settings.async_url
        _async_engine = create_async_engine(url, **_engine_options(url))
        logger.info(
            "Created async database engine", extra={"dialect": _async_engine.dialect.name}
        )
    return _async_engine


async def reset_async_engine() -> None:
    """Dispose the async engine; the next ``get_async_engine`` builds a new one."""
    global _async_engine

    engine, _async_engine = _async_engine, None
    if engine is not None:
        await engine.dispose()
