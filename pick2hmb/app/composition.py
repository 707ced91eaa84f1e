"""Composition root: wires the pick-forwarding pipeline and owns its lifecycle.

consumer -> PickMessageService -> PickPublisher -> HmbSession -> HTTP client
                                         \\-> StationInventory

Only this module and the factories know concrete adapter classes.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from pick2hmb.app.application.pick_message_service import PickMessageService
from pick2hmb.app.application.pick_publisher import PickPublisher
from pick2hmb.app.config.settings import Settings
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.domain.endpoint import parse_endpoint
from pick2hmb.app.domain.hmb_session import HmbSession
from pick2hmb.app.infrastructure.http.factory import create_http_client
from pick2hmb.app.infrastructure.inventory.factory import create_station_inventory
from pick2hmb.app.infrastructure.messaging.factory import create_message_consumer
from pick2hmb.app.ports.http_client import AbstractHttpClient
from pick2hmb.app.ports.message_consumer import MessageConsumer
from pick2hmb.app.ports.station_inventory import StationInventory


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def _close_quietly(name: str, resource: Any) -> None:
    if resource is None:
        return
    try:
        await resource.close()
    except Exception as exc:
        logger.warning("{} close failed: {}", name, exc)


class WorkerDependencies:
    """Built by connect(), released by close(); close() is safe after a partial connect."""

    def __init__(self, *, settings: Settings) -> None:
        self._settings = settings
        self._inventory: StationInventory | None = None
        self._http_client: AbstractHttpClient | None = None
        self._session: HmbSession | None = None
        self._message_service: PickMessageService | None = None
        self._message_consumer: MessageConsumer | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def session(self) -> HmbSession:
        if self._session is None:
            raise RuntimeError("HMB session is not wired")
        return self._session

    @property
    def message_service(self) -> PickMessageService:
        if self._message_service is None:
            raise RuntimeError("message service is not wired")
        return self._message_service

    @property
    def message_consumer(self) -> MessageConsumer:
        if self._message_consumer is None:
            raise RuntimeError("message consumer is not wired")
        return self._message_consumer

    async def connect(self) -> None:
        # an invalid sink is fatal before any connection is attempted
        endpoint = parse_endpoint(self._settings.sink)
        _log("hmb_sink_configured", host=endpoint.host, path=endpoint.path, user=endpoint.user)

        self._inventory = await create_station_inventory(self._settings)
        self._http_client = create_http_client()
        self._session = HmbSession(
            self._http_client,
            endpoint,
            timeout_seconds=self._settings.hmb_timeout_seconds,
        )
        self._message_service = PickMessageService(PickPublisher(self._session, self._inventory))

        self._message_consumer = create_message_consumer(self._settings)
        await self._message_consumer.connect()

    async def close(self) -> None:
        await _close_quietly("message consumer", self._message_consumer)
        await _close_quietly("http client", self._http_client)
        await _close_quietly("station inventory", self._inventory)
        self._message_consumer = None
        self._message_service = None
        self._session = None
        self._http_client = None
        self._inventory = None


def create_worker_dependencies(settings: Settings | None = None) -> WorkerDependencies:
    return WorkerDependencies(settings=settings or Settings())
