from webtracker.db.helpers import execute_query, fetch_val, to_db_time, utc_now, with_db_retry
from webtracker.db.pool import DatabaseManager

BOT_ALT_ID_KEY = "bot_lid"


class SystemConfigRepository:
    """Small key/value table for runtime-discovered settings."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def get(self, key: str) -> str:
        value = await fetch_val(
            self.db, "SELECT value FROM SystemConfig WHERE key = :key", {"key": key}
        )
        return value or ""

    @with_db_retry()
    async def set(self, key: str, value: str) -> None:
        query = """
            INSERT INTO SystemConfig (key, value, updated_at)
            VALUES (:key, :value, :updated_at)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """
        await execute_query(
            self.db, query, {"key": key, "value": value, "updated_at": to_db_time(utc_now())}
        )
