from __future__ import annotations

from typing import Any

from loguru import logger

from pick2hmb.app.constants import MAX_SEND_ATTEMPTS, PICK_QUEUE
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.domain.errors import DocumentError, InvalidDocument, LookupMiss, TransportError
from pick2hmb.app.domain.hmb_session import HmbSession
from pick2hmb.app.domain.models import BusMessage, Pick, SensorLocation
from pick2hmb.app.ports.station_inventory import StationInventory


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class PickPublisher:
    """
    Publishes picks to HMB, enriched with the coordinates of the picked sensor.

    Best effort: publish() never raises for lookup or bus failures. A lookup miss skips the
    pick without any request. Bus failures are retried up to max_attempts sends in total
    (attempts 1..max_attempts); the session clears itself on failure so each retry re-opens.
    After the last failure the pick is logged and dropped.
    """

    def __init__(
        self,
        session: HmbSession,
        inventory: StationInventory,
        *,
        max_attempts: int = MAX_SEND_ATTEMPTS,
    ) -> None:
        self._session = session
        self._inventory = inventory
        self._max_attempts = int(max_attempts)

    async def publish(self, pick: Pick) -> None:
        pick = pick.with_author_from_agency()

        try:
            location = await self._resolve_location(pick)
        except LookupMiss as exc:
            wf = pick.waveform_id
            logger.bind(
                service_name=SERVICE_NAME,
                event="pick_coordinates_missing",
                pick_id=pick.public_id,
                network=wf.network_code,
                station=wf.station_code,
                location=wf.location_code,
                time=pick.time_string,
            ).error("{}", exc)
            return
        except Exception as exc:
            logger.exception("station inventory lookup failed for {}: {}", pick.public_id, exc)
            return

        message = self.build_message(pick, location)

        for attempt in range(1, self._max_attempts + 1):
            try:
                await self._session.send(message)
            except InvalidDocument as exc:
                logger.error("failed to serialize pick {}: {}", pick.public_id, exc)
                _log("pick_dropped", pick_id=pick.public_id, error=str(exc))
                return
            except (TransportError, DocumentError) as exc:
                logger.bind(
                    service_name=SERVICE_NAME,
                    event="hmb_send_failed",
                    pick_id=pick.public_id,
                    attempt_number=attempt,
                ).error("{}", exc)
                continue
            _log("pick_published", pick_id=pick.public_id, attempt_number=attempt)
            return

        _log("pick_dropped", pick_id=pick.public_id, attempt_number=self._max_attempts)

    async def _resolve_location(self, pick: Pick) -> SensorLocation:
        wf = pick.waveform_id
        location = await self._inventory.get_sensor_location(
            wf.network_code,
            wf.station_code,
            wf.location_code,
            pick.time,
        )
        if location is None:
            raise LookupMiss(
                f"failed to get coordinates of {wf.network_code} {wf.station_code} "
                f"{wf.location_code} at {pick.time_string}"
            )
        return location

    @staticmethod
    def build_message(pick: Pick, location: SensorLocation) -> BusMessage:
        timestr = pick.time_string
        return BusMessage(
            type=PICK_QUEUE,
            queue=PICK_QUEUE,
            starttime=timestr,
            endtime=timestr,
            data={
                "latitude": float(location.latitude),
                "longitude": float(location.longitude),
                "pick": pick.to_document(),
            },
        )
