"""In-memory station inventory for tests and local mode.

Locations can be loaded from a JSON file holding a list of
{network, station, location, latitude, longitude, start, end} objects.
"""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable

from pick2hmb.app.domain.models import SensorLocation


class InMemoryStationInventory:
    def __init__(self, locations: Iterable[SensorLocation] = ()) -> None:
        self.locations: list[SensorLocation] = list(locations)

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryStationInventory":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"inventory file must hold a list of sensor locations: {path}")
        return cls(SensorLocation.from_document(item) for item in raw)

    def add(self, location: SensorLocation) -> None:
        self.locations.append(location)

    async def get_sensor_location(
        self,
        network: str,
        station: str,
        location: str,
        time: datetime,
    ) -> SensorLocation | None:
        matches = [loc for loc in self.locations if loc.matches(network, station, location, time)]
        if not matches:
            return None
        return max(matches, key=lambda loc: loc.start)

    async def close(self) -> None:
        return
