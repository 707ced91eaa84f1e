"""Inventory factory: selects and assembles the reference-data adapter."""
from __future__ import annotations

from pick2hmb.app.config.settings import Settings
from pick2hmb.app.infrastructure.inventory.inmemory.in_memory_inventory import InMemoryStationInventory
from pick2hmb.app.infrastructure.inventory.mongo.connection import create_mongo_client
from pick2hmb.app.infrastructure.inventory.mongo.mongo_inventory import MongoStationInventory
from pick2hmb.app.ports.station_inventory import StationInventory


async def create_station_inventory(settings: Settings) -> StationInventory:
    """Select inventory adapter from configuration and return port type."""
    backend = settings.inventory_backend.strip().lower()

    if backend == "mongo":
        mongo_client = await create_mongo_client(settings)
        inventory = MongoStationInventory(
            mongo_client[settings.database_name][settings.database_collection],
            client=mongo_client,
        )
        await inventory.ensure_indexes()
        return inventory

    if backend == "inmemory":
        if settings.inventory_file:
            return InMemoryStationInventory.from_file(settings.inventory_file)
        return InMemoryStationInventory()

    raise ValueError(f"Unsupported inventory backend: {backend}")
