from webtracker.db.helpers import execute_query, fetch_val, to_db_time, utc_now, with_db_retry
from webtracker.db.pool import DatabaseManager

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "pt", "es", "de")


class PreferenceRepository:
    """Per-user language preference."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def get_language(self, jid: str) -> str:
        language = await fetch_val(
            self.db, "SELECT language FROM UserPreference WHERE jid = :jid", {"jid": jid}
        )
        return language or DEFAULT_LANGUAGE

    @with_db_retry()
    async def set_language(self, jid: str, language: str) -> None:
        query = """
            INSERT INTO UserPreference (jid, language, updated_at)
            VALUES (:jid, :language, :updated_at)
            ON CONFLICT(jid) DO UPDATE SET
                language = excluded.language,
                updated_at = excluded.updated_at
        """
        await execute_query(
            self.db,
            query,
            {"jid": jid, "language": language, "updated_at": to_db_time(utc_now())},
        )
