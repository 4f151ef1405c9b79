"""
Repository bundle shared by the worker graph, scheduler and API.
"""

from webtracker.db.pool import DatabaseManager
from webtracker.repositories.group_authority_repository import GroupAuthorityRepository
from webtracker.repositories.preference_repository import PreferenceRepository
from webtracker.repositories.shipment_repository import ShipmentRepository
from webtracker.repositories.system_config_repository import SystemConfigRepository


class Store:
    def __init__(self, db: DatabaseManager):
        self.db = db
        self.shipments = ShipmentRepository(db)
        self.preferences = PreferenceRepository(db)
        self.authorities = GroupAuthorityRepository(db)
        self.system_config = SystemConfigRepository(db)

    async def initialize(self) -> None:
        await self.db.initialize()

    async def close(self) -> None:
        await self.db.close()


__all__ = [
    "GroupAuthorityRepository",
    "PreferenceRepository",
    "ShipmentRepository",
    "Store",
    "SystemConfigRepository",
]
