"""
RabbitMQ consumer for the upstream pick subscription.

The worker owns a durable, length-bounded queue bound to the subscription exchange
(topic) with the subscription name as routing key, so it receives the traffic of one
upstream messaging group (picks by default).

Lifecycle:
  DISCONNECTED -> CONNECTING -> CONNECTED -> CHANNEL_OPEN -> QUEUE_BOUND -> READY
  broker drop:  READY -> RECONNECTING -> ... -> READY, consuming again with the stored handler
  shutdown:     any -> CLOSING -> CLOSED

The connection close callback can fire outside the event loop thread, so the reconnect
task is scheduled with call_soon_threadsafe. Subscribe, cancel and teardown run under
one lock.
"""
from __future__ import annotations

import asyncio
from typing import Any

import aio_pika
from loguru import logger

from pick2hmb.app.config.settings import Settings
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.core.backoff import connect_attempts
from pick2hmb.app.infrastructure.messaging.rabbitmq.constants import ConsumerState
from pick2hmb.app.ports.message_consumer import DeliveryHandler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RabbitMQConsumer:
    """MessageConsumer over an aio-pika robust connection."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._state = ConsumerState.DISCONNECTED
        self._connection: aio_pika.RobustConnection | None = None
        self._channel: aio_pika.Channel | None = None
        self._queue: aio_pika.Queue | None = None
        self._handler: DeliveryHandler | None = None
        self._consumer_tag: str | None = None
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._closing = False

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def url(self) -> str:
        s = self._settings
        return f"amqp://{s.broker_user}:{s.broker_password}@{s.broker_host}:{s.broker_port}/"

    async def connect(self) -> None:
        """Connect and bind the subscription queue; raise once the attempts are exhausted."""
        self._state = ConsumerState.CONNECTING
        _log("broker_connecting", host=self._settings.broker_host, port=self._settings.broker_port)
        async for attempt, delay in connect_attempts(self._settings):
            _log("broker_connect_attempt", attempt=attempt, delay=delay)
            try:
                await self._establish()
                return
            except Exception as exc:
                logger.warning("broker connect attempt {} failed: {}", attempt, exc)
                if attempt >= self._settings.max_connection_attempts:
                    self._state = ConsumerState.DISCONNECTED
                    _log("broker_unavailable", attempts=attempt)
                    raise

    async def start_consuming(self, handler: DeliveryHandler) -> str:
        async with self._lock:
            if self._queue is None:
                raise RuntimeError("consumer not connected")
            self._handler = handler
            self._consumer_tag = await self._queue.consume(handler, no_ack=False)
            _log("consuming_started", queue=self._settings.queue_name, consumer_tag=self._consumer_tag)
            return self._consumer_tag

    async def cancel(self, consumer_tag: str) -> None:
        async with self._lock:
            if self._queue is None or self._consumer_tag != consumer_tag:
                return
            await self._queue.cancel(consumer_tag)
            self._consumer_tag = None

    async def close(self) -> None:
        self._closing = True
        self._state = ConsumerState.CLOSING
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        async with self._lock:
            await self._teardown()
        self._state = ConsumerState.CLOSED
        _log("consumer_closed")

    async def _establish(self) -> None:
        connection = await aio_pika.connect_robust(self.url)
        self._connection = connection
        self._loop = asyncio.get_running_loop()
        watched = getattr(connection, "connection", connection)
        if callable(getattr(watched, "add_close_callback", None)):
            watched.add_close_callback(self._on_connection_closed)
        self._state = ConsumerState.CONNECTED
        _log("broker_connected")
        await self._bind_subscription(connection)

    async def _bind_subscription(self, connection: aio_pika.RobustConnection) -> None:
        s = self._settings
        self._state = ConsumerState.CHANNEL_OPEN
        channel = await connection.channel()
        await channel.set_qos(prefetch_count=s.prefetch_count)
        exchange = await channel.declare_exchange(
            s.subscription_exchange,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )
        queue = await channel.declare_queue(
            s.queue_name,
            durable=True,
            arguments={"x-max-length": s.queue_max_length, "x-overflow": "reject-publish"},
        )
        await queue.bind(exchange, routing_key=s.subscription)
        self._channel, self._queue = channel, queue
        self._state = ConsumerState.QUEUE_BOUND
        _log("subscription_bound", exchange=s.subscription_exchange, subscription=s.subscription, queue=s.queue_name)
        self._state = ConsumerState.READY

    def _on_connection_closed(self, *args: Any, **kwargs: Any) -> None:
        if self._closing or self._loop is None:
            return
        self._state = ConsumerState.RECONNECTING
        _log("broker_connection_lost")
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return

        def schedule() -> None:
            self._reconnect_task = asyncio.create_task(self._reconnect())

        self._loop.call_soon_threadsafe(schedule)

    async def _reconnect(self) -> None:
        async for attempt, _delay in connect_attempts(self._settings):
            if self._closing:
                return
            _log("broker_reconnect_attempt", attempt=attempt)
            try:
                await self._establish()
                async with self._lock:
                    if self._closing:
                        return
                    if self._handler is not None and self._queue is not None:
                        self._consumer_tag = await self._queue.consume(self._handler, no_ack=False)
            except Exception as exc:
                logger.warning("broker reconnect attempt {} failed: {}", attempt, exc)
                continue
            _log("broker_reconnected", attempt=attempt)
            return
        self._state = ConsumerState.DISCONNECTED
        _log("broker_reconnect_exhausted", attempts=self._settings.max_connection_attempts)

    async def _teardown(self) -> None:
        channel, connection = self._channel, self._connection
        self._queue = self._channel = self._connection = None
        self._consumer_tag = None
        if channel is not None:
            try:
                await channel.close()
            except Exception as exc:
                logger.warning("channel close failed: {}", exc)
        if connection is not None:
            try:
                await connection.close()
            except Exception as exc:
                logger.warning("connection close failed: {}", exc)
