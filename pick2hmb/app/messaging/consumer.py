"""Delivery handler bridging the broker consumer and PickMessageService."""
from __future__ import annotations

import asyncio
from typing import Any

from aio_pika import IncomingMessage as AioPikaIncomingMessage
from loguru import logger

from pick2hmb.app.application.pick_message_service import PickMessageService
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.infrastructure.messaging.rabbitmq.aio_pika_message_adapter import AioPikaMessageAdapter


def create_message_handler(
    message_service: PickMessageService,
    message_handler_errors: asyncio.Queue[Exception],
    processing_lock: asyncio.Lock,
):
    """Build the on_message callback.

    Deliveries are handled one at a time under ``processing_lock``: the HMB session is
    shared and not synchronized. A delivery the service could not handle is rejected
    (unless already settled) and its error is put on ``message_handler_errors``.
    """

    async def on_message(raw_message: AioPikaIncomingMessage) -> None:
        message = AioPikaMessageAdapter(raw_message)
        async with processing_lock:
            try:
                await message_service.process_message(message)
            except Exception as exc:
                context: dict[str, Any] = {"routing_key": message.routing_key, "size": len(message.body)}
                logger.bind(service_name=SERVICE_NAME, event="message_failed", **context).exception(
                    "pick message handling failed: {}", exc
                )
                try:
                    if not message.settled:
                        await message.reject()
                finally:
                    await message_handler_errors.put(exc)

    return on_message
