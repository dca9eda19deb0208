"""
Database handles for executing built statements.

A handle exposes the engine's SQLAlchemy dialect (used to quote identifiers)
and a single ``execute`` coroutine. Each call runs in its own short
transaction; nothing is shared between calls except the engine's pool.

Driver failures are re-raised as ``ExecutionError`` carrying the driver's
message. No retry is attempted.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import TextClause
from sqlalchemy.engine import Connection, Dialect, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.concurrency import run_in_threadpool

from app.core.errors import ExecutionError
from app.core.observability import db_metrics
from app.sql.statement import Statement

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Rows (for statements that return them) and the affected row count."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0


class Database(Protocol):
    """What the data service needs from a database."""

    @property
    def dialect(self) -> Dialect: ...

    async def execute(self, statement: Statement, *, operation: str = "query") -> QueryResult: ...


def _driver_message(exc: SQLAlchemyError) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


def _run(conn: Connection, clause: TextClause, params: dict[str, Any]) -> QueryResult:
    result = conn.execute(clause, params)
    if result.returns_rows:
        return QueryResult(rows=[dict(row) for row in result.mappings()], rowcount=result.rowcount)
    return QueryResult(rowcount=result.rowcount)


class _BaseDatabase(ABC):
    """Shared render/log/error-translation logic for engine-backed handles."""

    @property
    @abstractmethod
    def dialect(self) -> Dialect: ...

    @abstractmethod
    async def _dispatch(self, clause: TextClause, params: dict[str, Any]) -> QueryResult:
        """Run a rendered clause in its own transaction."""

    async def execute(self, statement: Statement, *, operation: str = "query") -> QueryResult:
        """
        Render and execute a statement.

        Args:
            statement: Built statement
            operation: Operation name for logs and metrics (add, edit, remove, list)

        Returns:
            QueryResult with rows (for SELECT) and rowcount

        Raises:
            ExecutionError: If the driver reports a failure
        """
        clause, params = statement.to_clause(self.dialect)
        logger.debug(
            "Executing statement",
            extra={"operation": operation, "sql": clause.text, "param_count": len(params)},
        )

        try:
            with db_metrics.track(operation):
                result = await self._dispatch(clause, params)
        except SQLAlchemyError as exc:
            message = _driver_message(exc)
            logger.warning(
                f"Statement failed: {message}",
                extra={"operation": operation, "sql": clause.text},
            )
            raise ExecutionError(message, details={"operation": operation}) from exc

        logger.debug(
            "Statement finished",
            extra={"operation": operation, "rowcount": result.rowcount, "rows": len(result.rows)},
        )
        return result


class AsyncEngineDatabase(_BaseDatabase):
    """Handle backed by a SQLAlchemy ``AsyncEngine``."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    @property
    def dialect(self) -> Dialect:
        return self.engine.dialect

    async def _dispatch(self, clause: TextClause, params: dict[str, Any]) -> QueryResult:
        async with self.engine.begin() as conn:
            return await conn.run_sync(_run, clause, params)


class EngineDatabase(_BaseDatabase):
    """
    Handle backed by a sync SQLAlchemy ``Engine``.

    Calls run in Starlette's threadpool so they do not block the event loop.
    Used by scripts, local SQLite setups and tests.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @property
    def dialect(self) -> Dialect:
        return self.engine.dialect

    def _execute_sync(self, clause: TextClause, params: dict[str, Any]) -> QueryResult:
        with self.engine.begin() as conn:
            return _run(conn, clause, params)

    async def _dispatch(self, clause: TextClause, params: dict[str, Any]) -> QueryResult:
        return await run_in_threadpool(self._execute_sync, clause, params)


RegisterCallback = Callable[[Database], Awaitable[None]]
