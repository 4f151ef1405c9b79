"""
Persistence for per-group bot authority.

Rows older than the TTL are treated as absent by every read.
"""

from datetime import datetime, timedelta

from webtracker.db.helpers import (
    execute_query,
    fetch_all,
    fetch_one,
    fetch_val,
    from_db_time,
    to_db_time,
    utc_now,
    with_db_retry,
)
from webtracker.db.pool import DatabaseManager

AUTHORITY_TTL = timedelta(hours=1)


class GroupAuthorityRepository:
    def __init__(self, db: DatabaseManager, ttl: timedelta = AUTHORITY_TTL):
        self.db = db
        self.ttl = ttl

    def _fresh_threshold(self, now: datetime | None = None) -> str:
        return to_db_time((now or utc_now()) - self.ttl)

    async def get_entry(self, jid: str, now: datetime | None = None) -> tuple[bool, datetime] | None:
        """(is_authorized, updated_at) for a group, or None when unknown or expired."""
        row = await fetch_one(
            self.db,
            "SELECT is_authorized, updated_at FROM GroupAuthority WHERE jid = :jid",
            {"jid": jid},
        )
        if not row:
            return None

        updated_at = from_db_time(row["updated_at"])
        if (now or utc_now()) - updated_at > self.ttl:
            return None
        return bool(row["is_authorized"]), updated_at

    async def get(self, jid: str, now: datetime | None = None) -> bool | None:
        entry = await self.get_entry(jid, now=now)
        return entry[0] if entry else None

    @with_db_retry()
    async def set(self, jid: str, is_authorized: bool) -> None:
        query = """
            INSERT INTO GroupAuthority (jid, is_authorized, updated_at)
            VALUES (:jid, :is_authorized, :updated_at)
            ON CONFLICT(jid) DO UPDATE SET
                is_authorized = excluded.is_authorized,
                updated_at = excluded.updated_at
        """
        await execute_query(
            self.db,
            query,
            {"jid": jid, "is_authorized": int(is_authorized), "updated_at": to_db_time(utc_now())},
        )

    async def count_authorized(self) -> int:
        count = await fetch_val(
            self.db,
            "SELECT COUNT(*) FROM GroupAuthority WHERE is_authorized = 1 AND updated_at > :threshold",
            {"threshold": self._fresh_threshold()},
        )
        return count or 0

    async def has_authorized(self) -> bool:
        return await self.count_authorized() > 0

    async def list_authorized(self) -> list[str]:
        rows = await fetch_all(
            self.db,
            "SELECT jid FROM GroupAuthority WHERE is_authorized = 1 AND updated_at > :threshold",
            {"threshold": self._fresh_threshold()},
        )
        return [row["jid"] for row in rows]
