"""Unit tests for the consumer-side message handler."""
from __future__ import annotations

import asyncio

import pytest

from pick2hmb.app.messaging.consumer import create_message_handler


class FakeRawMessage:
    """Subset of aio_pika.IncomingMessage used by the handler and adapter."""

    def __init__(self, body: bytes, routing_key: str = "PICK") -> None:
        self.body = body
        self.routing_key = routing_key
        self.processed = False
        self.acked = False
        self.rejected_requeue: bool | None = None

    async def ack(self) -> None:
        self.acked = True
        self.processed = True

    async def nack(self, *, requeue: bool = True) -> None:
        self.processed = True

    async def reject(self, *, requeue: bool = False) -> None:
        self.rejected_requeue = requeue
        self.processed = True


class AckingService:
    def __init__(self) -> None:
        self.bodies: list[bytes] = []

    async def process_message(self, message) -> None:  # noqa: ANN001
        self.bodies.append(message.body)
        await message.ack()


class FailingService:
    async def process_message(self, message) -> None:  # noqa: ANN001
        raise ValueError("message must be a JSON object")


@pytest.mark.asyncio
async def test_handler_passes_adapted_message_to_service():
    service = AckingService()
    errors: asyncio.Queue[Exception] = asyncio.Queue()
    handler = create_message_handler(service, errors, asyncio.Lock())  # type: ignore[arg-type]
    raw = FakeRawMessage(b'{"type": "data"}')

    await handler(raw)

    assert service.bodies == [b'{"type": "data"}']
    assert raw.acked is True
    assert errors.empty()


@pytest.mark.asyncio
async def test_handler_rejects_without_requeue_and_records_error():
    errors: asyncio.Queue[Exception] = asyncio.Queue()
    handler = create_message_handler(FailingService(), errors, asyncio.Lock())  # type: ignore[arg-type]
    raw = FakeRawMessage(b"[]")

    await handler(raw)

    assert raw.rejected_requeue is False
    recorded = errors.get_nowait()
    assert isinstance(recorded, ValueError)


@pytest.mark.asyncio
async def test_handler_serializes_deliveries():
    active = 0
    peak = 0

    class SlowService:
        async def process_message(self, message) -> None:  # noqa: ANN001
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            await message.ack()

    handler = create_message_handler(SlowService(), asyncio.Queue(), asyncio.Lock())  # type: ignore[arg-type]

    await asyncio.gather(*(handler(FakeRawMessage(b"{}")) for _ in range(3)))

    assert peak == 1
