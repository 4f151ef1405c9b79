"""
SQLite engine manager.

The store allows a single active connection so writes are serialized; every
connection gets WAL journalling, NORMAL sync and a 5 second busy timeout.
"""

import asyncio
import time
from typing import Any

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.pool import QueuePool

from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS Shipment (
        tracking_id TEXT PRIMARY KEY,
        user_jid TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL,
        scheduled_transit_time TEXT NOT NULL,
        outfordelivery_time TEXT NOT NULL,
        expected_delivery_time TEXT NOT NULL,
        sender_timezone TEXT NOT NULL DEFAULT 'UTC',
        recipient_timezone TEXT NOT NULL DEFAULT 'UTC',
        sender_name TEXT NOT NULL DEFAULT '',
        sender_phone TEXT NOT NULL DEFAULT '',
        origin TEXT NOT NULL DEFAULT '',
        recipient_name TEXT NOT NULL DEFAULT '',
        recipient_phone TEXT NOT NULL DEFAULT '',
        recipient_email TEXT NOT NULL DEFAULT '',
        recipient_id TEXT NOT NULL DEFAULT '',
        recipient_address TEXT NOT NULL DEFAULT '',
        destination TEXT NOT NULL DEFAULT '',
        cargo_type TEXT NOT NULL DEFAULT '',
        weight REAL NOT NULL DEFAULT 15.0,
        cost REAL NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_shipment_status ON Shipment (status)",
    "CREATE INDEX IF NOT EXISTS idx_shipment_user_phone ON Shipment (user_jid, recipient_phone)",
    "CREATE INDEX IF NOT EXISTS idx_shipment_created_at ON Shipment (created_at)",
    """
    CREATE TABLE IF NOT EXISTS UserPreference (
        jid TEXT PRIMARY KEY,
        language TEXT NOT NULL DEFAULT 'en',
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS GroupAuthority (
        jid TEXT PRIMARY KEY,
        is_authorized INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS SystemConfig (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL DEFAULT '',
        updated_at TEXT NOT NULL
    )
    """,
)

PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA foreign_keys=ON",
)


def _configure_connection(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        for pragma in PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


class DatabaseManager:
    """
    Owns the SQLite engine for the process.

    Usage:
        db = DatabaseManager("webtracker.db")
        await db.initialize()
        with db.begin() as conn:
            conn.execute(text("DELETE FROM Shipment WHERE tracking_id = :id"), {"id": tid})
    """

    def __init__(self, database_path: str, pool_timeout: float = 5.0):
        self.database_path = database_path
        self.pool_timeout = pool_timeout
        self.engine: Engine | None = None
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        """Open the engine and create the schema."""
        if self._initialized:
            logger.warning("Database already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed database")

        try:
            logger.info("Initializing SQLite store", path=self.database_path)
            self.engine = self._create_engine()
            await asyncio.to_thread(self._create_schema)
            self._initialized = True
            logger.info("SQLite store initialized", path=self.database_path)

        except Exception as e:
            logger.error("Failed to initialize SQLite store", error=str(e))
            if self.engine is not None:
                self.engine.dispose()
                self.engine = None
            raise RuntimeError(f"Database initialization failed: {e}") from e

    def _create_engine(self) -> Engine:
        engine = create_engine(
            f"sqlite:///{self.database_path}",
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=self.pool_timeout,
            connect_args={"check_same_thread": False, "timeout": self.pool_timeout},
        )
        event.listen(engine, "connect", _configure_connection)
        return engine

    def _create_schema(self) -> None:
        with self.engine.begin() as conn:
            for statement in SCHEMA:
                conn.execute(text(statement))

    async def close(self) -> None:
        """Dispose of the engine."""
        if not self._initialized or self._closed:
            return

        logger.info("Closing SQLite store")
        try:
            await asyncio.to_thread(self.engine.dispose)
        except Exception as e:
            logger.error("Error closing SQLite store", error=str(e))
        finally:
            self._initialized = False
            self._closed = True

    def _require_engine(self) -> Engine:
        if not self._initialized:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        if self._closed:
            raise RuntimeError("Database is closed")
        return self.engine

    def connect(self):
        """Plain connection for reads."""
        return self._require_engine().connect()

    def begin(self):
        """Connection with a transaction committed on exit."""
        return self._require_engine().begin()

    async def health_check(self) -> dict[str, Any]:
        if not self._initialized:
            return {"healthy": False, "error": "Database not initialized", "service": "sqlite"}
        if self._closed:
            return {"healthy": False, "error": "Database is closed", "service": "sqlite"}

        def _ping() -> int:
            with self.connect() as conn:
                return conn.execute(text("SELECT 1")).scalar_one()

        start_time = time.time()
        try:
            value = await asyncio.to_thread(_ping)
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "sqlite",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        return {
            "healthy": value == 1,
            "service": "sqlite",
            "path": self.database_path,
            "connection_time_ms": round((time.time() - start_time) * 1000, 2),
        }
