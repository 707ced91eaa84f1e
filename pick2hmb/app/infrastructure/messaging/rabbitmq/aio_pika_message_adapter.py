"""aio-pika delivery exposed through ports.IncomingMessage."""
from __future__ import annotations

from aio_pika import IncomingMessage as AioPikaIncomingMessage


class AioPikaMessageAdapter:
    def __init__(self, message: AioPikaIncomingMessage) -> None:
        self._message = message

    @property
    def body(self) -> bytes:
        return self._message.body

    @property
    def routing_key(self) -> str:
        return self._message.routing_key or ""

    @property
    def settled(self) -> bool:
        """True once the delivery was acked, nacked or rejected."""
        return bool(self._message.processed)

    async def ack(self) -> None:
        await self._message.ack()

    async def reject(self) -> None:
        """Reject without requeue."""
        await self._message.reject(requeue=False)
