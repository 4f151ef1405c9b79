"""
Persistence for shipments.

All lifecycle instants are stored as fixed-width UTC text (see db.helpers) so
range predicates compare correctly.
"""

import asyncio
from datetime import datetime, timedelta

from webtracker.db.helpers import (
    DatabaseError,
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
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.domain.shipment_domain import (
    ALL_STATUSES,
    FIXED_WEIGHT_KG,
    STATUS_DELIVERED,
    STATUS_INTRANSIT,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_PENDING,
    Shipment,
)

logger = get_logger(__name__)

# Columns the !edit command may touch. Anything else is rejected before SQL is built.
EDITABLE_FIELDS = frozenset(
    {
        "sender_name",
        "sender_phone",
        "origin",
        "recipient_name",
        "recipient_phone",
        "recipient_email",
        "recipient_id",
        "recipient_address",
        "destination",
        "cargo_type",
    }
)

# status -> (column holding the due instant, next status)
TRANSITIONS: dict[str, tuple[str, str]] = {
    STATUS_PENDING: ("scheduled_transit_time", STATUS_INTRANSIT),
    STATUS_INTRANSIT: ("outfordelivery_time", STATUS_OUT_FOR_DELIVERY),
    STATUS_OUT_FOR_DELIVERY: ("expected_delivery_time", STATUS_DELIVERED),
}

PRUNE_BATCH_SIZE = 100
PRUNE_BATCH_PAUSE_SECONDS = 0.1


class ShipmentRepositoryError(DatabaseError):
    """Shipment persistence failure."""


class ShipmentRepository:
    """Shipment table access."""

    SELECT_COLUMNS = """
        tracking_id, user_jid, status,
        created_at, scheduled_transit_time, outfordelivery_time, expected_delivery_time,
        updated_at, sender_timezone, recipient_timezone,
        sender_name, sender_phone, origin,
        recipient_name, recipient_phone, recipient_email, recipient_id, recipient_address,
        destination, cargo_type, weight, cost
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    @staticmethod
    def _row_to_shipment(row: dict | None) -> Shipment | None:
        if not row:
            return None

        return Shipment(
            tracking_id=row["tracking_id"],
            user_jid=row["user_jid"],
            status=row["status"],
            created_at=from_db_time(row["created_at"]),
            scheduled_transit_time=from_db_time(row["scheduled_transit_time"]),
            out_for_delivery_time=from_db_time(row["outfordelivery_time"]),
            expected_delivery_time=from_db_time(row["expected_delivery_time"]),
            updated_at=from_db_time(row["updated_at"]),
            sender_timezone=row["sender_timezone"],
            recipient_timezone=row["recipient_timezone"],
            sender_name=row["sender_name"],
            sender_phone=row["sender_phone"],
            origin=row["origin"],
            recipient_name=row["recipient_name"],
            recipient_phone=row["recipient_phone"],
            recipient_email=row["recipient_email"],
            recipient_id=row["recipient_id"],
            recipient_address=row["recipient_address"],
            destination=row["destination"],
            cargo_type=row["cargo_type"],
            weight=row["weight"],
            cost=row["cost"],
        )

    # =================================================================
    # WRITES
    # =================================================================

    @with_db_retry()
    async def create(self, shipment: Shipment) -> None:
        shipment.weight = FIXED_WEIGHT_KG
        now = to_db_time(utc_now())

        query = """
            INSERT INTO Shipment (
                tracking_id, user_jid, status,
                created_at, scheduled_transit_time, outfordelivery_time, expected_delivery_time,
                updated_at, sender_timezone, recipient_timezone,
                sender_name, sender_phone, origin,
                recipient_name, recipient_phone, recipient_email, recipient_id, recipient_address,
                destination, cargo_type, weight, cost
            ) VALUES (
                :tracking_id, :user_jid, :status,
                :created_at, :scheduled_transit_time, :outfordelivery_time, :expected_delivery_time,
                :updated_at, :sender_timezone, :recipient_timezone,
                :sender_name, :sender_phone, :origin,
                :recipient_name, :recipient_phone, :recipient_email, :recipient_id,
                :recipient_address, :destination, :cargo_type, :weight, :cost
            )
        """

        await execute_query(
            self.db,
            query,
            {
                "tracking_id": shipment.tracking_id,
                "user_jid": shipment.user_jid,
                "status": shipment.status,
                "created_at": to_db_time(shipment.created_at),
                "scheduled_transit_time": to_db_time(shipment.scheduled_transit_time),
                "outfordelivery_time": to_db_time(shipment.out_for_delivery_time),
                "expected_delivery_time": to_db_time(shipment.expected_delivery_time),
                "updated_at": now,
                "sender_timezone": shipment.sender_timezone,
                "recipient_timezone": shipment.recipient_timezone,
                "sender_name": shipment.sender_name,
                "sender_phone": shipment.sender_phone,
                "origin": shipment.origin,
                "recipient_name": shipment.recipient_name,
                "recipient_phone": shipment.recipient_phone,
                "recipient_email": shipment.recipient_email,
                "recipient_id": shipment.recipient_id,
                "recipient_address": shipment.recipient_address,
                "destination": shipment.destination,
                "cargo_type": shipment.cargo_type,
                "weight": shipment.weight,
                "cost": shipment.cost,
            },
        )
        logger.info("Shipment created", tracking_id=shipment.tracking_id, user_jid=shipment.user_jid)

    @with_db_retry()
    async def update(self, shipment: Shipment) -> bool:
        """Rewrite every editable column of an existing shipment."""
        if shipment.status not in ALL_STATUSES:
            raise ShipmentRepositoryError(
                f"invalid status: {shipment.status}", operation="update", recoverable=False
            )
        shipment.weight = FIXED_WEIGHT_KG

        query = """
            UPDATE Shipment SET
                status = :status,
                sender_name = :sender_name, sender_phone = :sender_phone, origin = :origin,
                recipient_name = :recipient_name, recipient_phone = :recipient_phone,
                recipient_email = :recipient_email, recipient_id = :recipient_id,
                recipient_address = :recipient_address, destination = :destination,
                cargo_type = :cargo_type, weight = :weight, cost = :cost,
                updated_at = :updated_at
            WHERE tracking_id = :tracking_id
        """

        affected = await execute_query(
            self.db,
            query,
            {
                "status": shipment.status,
                "sender_name": shipment.sender_name,
                "sender_phone": shipment.sender_phone,
                "origin": shipment.origin,
                "recipient_name": shipment.recipient_name,
                "recipient_phone": shipment.recipient_phone,
                "recipient_email": shipment.recipient_email,
                "recipient_id": shipment.recipient_id,
                "recipient_address": shipment.recipient_address,
                "destination": shipment.destination,
                "cargo_type": shipment.cargo_type,
                "weight": shipment.weight,
                "cost": shipment.cost,
                "updated_at": to_db_time(utc_now()),
                "tracking_id": shipment.tracking_id,
            },
        )
        return affected > 0

    @with_db_retry()
    async def advance_status(self, tracking_id: str, current: str, new: str) -> bool:
        """Move a shipment forward only if it is still in `current`."""
        query = """
            UPDATE Shipment SET status = :new, updated_at = :updated_at
            WHERE tracking_id = :tracking_id AND status = :current
        """
        affected = await execute_query(
            self.db,
            query,
            {
                "new": new,
                "current": current,
                "tracking_id": tracking_id,
                "updated_at": to_db_time(utc_now()),
            },
        )
        return affected > 0

    @with_db_retry()
    async def update_field(self, tracking_id: str, field: str, value: str) -> bool:
        if field not in EDITABLE_FIELDS:
            raise ShipmentRepositoryError(
                f"invalid field: {field}", operation="update_field", recoverable=False
            )

        # field is from the allow-list above
        query = f"""
            UPDATE Shipment SET {field} = :value, updated_at = :updated_at
            WHERE tracking_id = :tracking_id
        """
        affected = await execute_query(
            self.db,
            query,
            {"value": value, "updated_at": to_db_time(utc_now()), "tracking_id": tracking_id},
        )
        return affected > 0

    @with_db_retry()
    async def delete(self, tracking_id: str) -> bool:
        affected = await execute_query(
            self.db,
            "DELETE FROM Shipment WHERE tracking_id = :tracking_id",
            {"tracking_id": tracking_id},
        )
        return affected > 0

    # =================================================================
    # READS
    # =================================================================

    async def get(self, tracking_id: str) -> Shipment | None:
        query = f"SELECT {self.SELECT_COLUMNS} FROM Shipment WHERE tracking_id = :tracking_id"
        row = await fetch_one(self.db, query, {"tracking_id": tracking_id})
        return self._row_to_shipment(row)

    async def list_all(self) -> list[Shipment]:
        query = f"SELECT {self.SELECT_COLUMNS} FROM Shipment ORDER BY created_at DESC"
        rows = await fetch_all(self.db, query)
        return [self._row_to_shipment(row) for row in rows]

    async def find_similar(self, user_jid: str, recipient_phone: str) -> str | None:
        """Newest tracking id this user already created for the same recipient phone."""
        query = """
            SELECT tracking_id FROM Shipment
            WHERE user_jid = :user_jid AND recipient_phone = :recipient_phone
            ORDER BY created_at DESC LIMIT 1
        """
        return await fetch_val(
            self.db, query, {"user_jid": user_jid, "recipient_phone": recipient_phone}
        )

    async def last_tracking_for(self, user_jid: str) -> str | None:
        query = """
            SELECT tracking_id FROM Shipment
            WHERE user_jid = :user_jid
            ORDER BY created_at DESC LIMIT 1
        """
        return await fetch_val(self.db, query, {"user_jid": user_jid})

    async def ready_for_transition(self, status: str, now: datetime) -> list[str]:
        """Tracking ids in `status` whose next instant is due."""
        if status not in TRANSITIONS:
            raise ShipmentRepositoryError(
                f"no transition from status: {status}", operation="ready", recoverable=False
            )
        column, _ = TRANSITIONS[status]

        query = f"""
            SELECT tracking_id FROM Shipment
            WHERE status = :status AND {column} <= :now
            ORDER BY {column}
        """
        rows = await fetch_all(self.db, query, {"status": status, "now": to_db_time(now)})
        return [row["tracking_id"] for row in rows]

    async def count_daily(self, since: datetime) -> tuple[int, int]:
        """Shipments created, and shipments delivered, since `since`."""
        created = await fetch_val(
            self.db,
            "SELECT COUNT(*) FROM Shipment WHERE created_at >= :since",
            {"since": to_db_time(since)},
        )
        delivered = await fetch_val(
            self.db,
            "SELECT COUNT(*) FROM Shipment WHERE status = :status AND updated_at >= :since",
            {"status": STATUS_DELIVERED, "since": to_db_time(since)},
        )
        return created or 0, delivered or 0

    async def count_created_by_status(self, since: datetime) -> dict[str, int]:
        query = """
            SELECT status, COUNT(*) AS total FROM Shipment
            WHERE created_at >= :since
            GROUP BY status
        """
        rows = await fetch_all(self.db, query, {"since": to_db_time(since)})
        counts = dict.fromkeys(ALL_STATUSES, 0)
        for row in rows:
            counts[row["status"]] = row["total"]
        return counts

    async def count_by_status(self) -> dict[str, int]:
        rows = await fetch_all(
            self.db, "SELECT status, COUNT(*) AS total FROM Shipment GROUP BY status"
        )
        counts = dict.fromkeys(ALL_STATUSES, 0)
        for row in rows:
            counts[row["status"]] = row["total"]
        counts["total"] = sum(row["total"] for row in rows)
        return counts

    # =================================================================
    # RETENTION
    # =================================================================

    @with_db_retry()
    async def _delete_batch(self, where: str, params: dict) -> int:
        query = f"""
            DELETE FROM Shipment WHERE rowid IN (
                SELECT rowid FROM Shipment WHERE {where} LIMIT :batch_size
            )
        """
        return await execute_query(self.db, query, {**params, "batch_size": PRUNE_BATCH_SIZE})

    async def _delete_in_batches(self, where: str, params: dict) -> int:
        total = 0
        while True:
            deleted = await self._delete_batch(where, params)
            total += deleted
            if deleted < PRUNE_BATCH_SIZE:
                return total
            await asyncio.sleep(PRUNE_BATCH_PAUSE_SECONDS)

    async def prune_aged(
        self,
        now: datetime | None = None,
        delivered_retention_hours: int = 48,
        max_retention_days: int = 7,
    ) -> dict[str, int]:
        """
        Two-phase retention:
        1. delivered shipments not touched for `delivered_retention_hours`
        2. any shipment created more than `max_retention_days` ago
        """
        now = now or utc_now()
        delivered_cutoff = now - timedelta(hours=delivered_retention_hours)
        aged_cutoff = now - timedelta(days=max_retention_days)

        delivered = await self._delete_in_batches(
            "status = :status AND updated_at < :cutoff",
            {"status": STATUS_DELIVERED, "cutoff": to_db_time(delivered_cutoff)},
        )
        aged = await self._delete_in_batches(
            "created_at < :cutoff", {"cutoff": to_db_time(aged_cutoff)}
        )

        logger.info("Retention prune finished", delivered_removed=delivered, aged_removed=aged)
        return {"delivered": delivered, "aged": aged, "total": delivered + aged}
