"""MongoDB implementation of StationInventory.

One document per sensor location epoch:
  {network, station, location, latitude, longitude, start, end}
``end`` is null (or absent) for an epoch that is still open.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING

from pick2hmb.app.domain.models import SensorLocation, parse_time
from pick2hmb.app.infrastructure.inventory.mongo.connection import close_mongo_client


class MongoStationInventory:
    """Concrete implementation of StationInventory using MongoDB."""

    def __init__(self, collection: AsyncIOMotorCollection, *, client: Any | None = None) -> None:
        self._collection = collection
        self._client = client

    async def ensure_indexes(self) -> None:
        """Infrastructure bootstrap: create the lookup index. Not part of the port."""
        await self._collection.create_index(
            [("network", ASCENDING), ("station", ASCENDING), ("location", ASCENDING), ("start", DESCENDING)],
            name="idx_sensor_location_epoch",
        )

    async def get_sensor_location(
        self,
        network: str,
        station: str,
        location: str,
        time: datetime,
    ) -> SensorLocation | None:
        time = parse_time(time)
        doc = await self._collection.find_one(
            {
                "network": network,
                "station": station,
                "location": location,
                "start": {"$lte": time},
                "$or": [{"end": None}, {"end": {"$gt": time}}],
            },
            sort=[("start", DESCENDING)],
        )
        if not doc:
            return None
        return SensorLocation.from_document(doc)

    async def close(self) -> None:
        """Close underlying Mongo client when owned by this adapter."""
        if self._client is not None:
            await close_mongo_client(self._client)
