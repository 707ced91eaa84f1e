"""Inventory database client (MongoDB via motor)."""
from __future__ import annotations

import inspect
from typing import Any

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient

from pick2hmb.app.config.settings import Settings
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.core.backoff import connect_attempts


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def build_mongo_uri(settings: Settings) -> str:
    credentials = ""
    if settings.database_user and settings.database_password:
        credentials = f"{settings.database_user}:{settings.database_password}@"
    return f"mongodb://{credentials}{settings.database_host}:{settings.database_port}"


async def close_mongo_client(client: Any) -> None:
    # motor's close() is sync; newer async drivers return an awaitable
    res = client.close()
    if inspect.isawaitable(res):
        await res


async def create_mongo_client(settings: Settings) -> AsyncIOMotorClient:
    """Return a client that answered ``ping``; raise the last error once attempts run out.

    Datetimes come back timezone-aware (UTC) so epoch bounds compare with pick times.
    """
    _log("inventory_db_connecting", host=settings.database_host, database=settings.database_name)
    async for attempt, delay in connect_attempts(settings):
        _log("inventory_db_connect_attempt", attempt=attempt, delay=delay)
        client = AsyncIOMotorClient(
            build_mongo_uri(settings),
            serverSelectionTimeoutMS=settings.database_connection_timeout_ms,
            tz_aware=True,
        )
        try:
            await client.admin.command("ping")
        except Exception as exc:
            logger.warning("inventory database attempt {} failed: {}", attempt, exc)
            await close_mongo_client(client)
            if attempt >= settings.max_connection_attempts:
                raise
            continue
        _log("inventory_db_connected", attempt=attempt)
        return client
    raise RuntimeError("inventory database connect failed: no attempts configured")
