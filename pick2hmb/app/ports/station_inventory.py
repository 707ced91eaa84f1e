"""Port: sensor location lookup (reference data). Implementations live in infrastructure."""
from __future__ import annotations

from datetime import datetime
from typing import Protocol

from pick2hmb.app.domain.models import SensorLocation


class StationInventory(Protocol):
    async def get_sensor_location(
        self,
        network: str,
        station: str,
        location: str,
        time: datetime,
    ) -> SensorLocation | None:
        """Return the location epoch valid at ``time``, or None when nothing matches."""
        ...

    async def close(self) -> None:
        """Release resources (e.g. DB client). No-op allowed if nothing to close."""
        ...
