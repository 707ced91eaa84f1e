from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pick2hmb.app.domain.models import SensorLocation
from pick2hmb.app.infrastructure.inventory.inmemory.in_memory_inventory import InMemoryStationInventory


@pytest.fixture()
def inventory() -> InMemoryStationInventory:
    """XX.AAA.00 at (10.0, 20.0), open epoch since 2010."""
    return InMemoryStationInventory(
        [
            SensorLocation(
                network="XX",
                station="AAA",
                location="00",
                latitude=10.0,
                longitude=20.0,
                start=datetime(2010, 1, 1, tzinfo=timezone.utc),
            )
        ]
    )
