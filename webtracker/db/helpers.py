"""
Async query helpers over the SQLite engine.

Blocking driver calls run in a worker thread; SQLAlchemy errors are wrapped in
DatabaseError. Busy/locked failures are marked recoverable so writes can be
retried with `with_db_retry`.
"""

import asyncio
import functools
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from webtracker.db.pool import DatabaseManager
from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class DatabaseError(Exception):
    """Custom database error with context."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


def to_db_time(value: datetime) -> str:
    """Fixed-width UTC text so lexical order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(DB_TIME_FORMAT)


def from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, DB_TIME_FORMAT).replace(tzinfo=UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


async def _run(work: Callable[[], Any], operation: str, query: str) -> Any:
    try:
        return await asyncio.to_thread(work)
    except (OperationalError, PoolTimeoutError) as e:
        logger.error(
            "Database operation error", operation=operation, query=query[:100], error=str(e)
        )
        raise DatabaseError(f"Query failed: {e}", operation=operation, recoverable=True) from e
    except SQLAlchemyError as e:
        logger.error(
            "Database operation error", operation=operation, query=query[:100], error=str(e)
        )
        raise DatabaseError(f"Query failed: {e}", operation=operation, recoverable=False) from e


async def fetch_one(
    db: DatabaseManager, query: str, params: dict | None = None
) -> dict[str, Any] | None:
    """
    Fetch single row as dictionary.

    Args:
        db: Store manager
        query: SQL query with :name placeholders
        params: Query parameters

    Returns:
        Row as dict or None if not found
    """

    def _work():
        with db.connect() as conn:
            row = conn.execute(text(query), params or {}).mappings().first()
            return dict(row) if row is not None else None

    return await _run(_work, "fetch_one", query)


async def fetch_all(db: DatabaseManager, query: str, params: dict | None = None) -> list[dict]:
    """Fetch all rows as a list of dictionaries."""

    def _work():
        with db.connect() as conn:
            return [dict(row) for row in conn.execute(text(query), params or {}).mappings()]

    return await _run(_work, "fetch_all", query)


async def fetch_val(db: DatabaseManager, query: str, params: dict | None = None) -> Any:
    """Fetch the first column of the first row."""

    def _work():
        with db.connect() as conn:
            return conn.execute(text(query), params or {}).scalar()

    return await _run(_work, "fetch_val", query)


async def execute_query(db: DatabaseManager, query: str, params: dict | None = None) -> int:
    """
    Execute a write inside its own transaction.

    Returns:
        Number of affected rows
    """

    def _work():
        with db.begin() as conn:
            return conn.execute(text(query), params or {}).rowcount

    return await _run(_work, "execute", query)


def with_db_retry(max_retries: int = 2, base_delay: float = 1.0):
    """
    Retry a write on recoverable (busy/locked) database failures.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Fixed delay between attempts in seconds
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except DatabaseError as e:
                    if not e.recoverable:
                        logger.error(
                            "Database operation failed with permanent error",
                            operation=func.__name__,
                            error=str(e),
                        )
                        raise

                    if attempt < max_retries:
                        logger.warning(
                            "Database operation failed, retrying",
                            operation=func.__name__,
                            attempt=attempt + 1,
                            max_retries=max_retries,
                            delay=base_delay,
                            error=str(e),
                        )
                        await asyncio.sleep(base_delay)
                        continue

                    logger.error(
                        "Database operation failed after all retries",
                        operation=func.__name__,
                        attempts=max_retries + 1,
                        error=str(e),
                    )
                    raise DatabaseError(
                        f"Operation failed after {max_retries} retries: {e}",
                        operation=func.__name__,
                        recoverable=False,
                    ) from e

        return wrapper

    return decorator
