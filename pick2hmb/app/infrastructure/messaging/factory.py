"""Pick subscription factory: CONSUMER_BACKEND selects the broker adapter."""
from __future__ import annotations

from pick2hmb.app.config.settings import Settings
from pick2hmb.app.infrastructure.messaging.rabbitmq.rabbitmq_consumer import RabbitMQConsumer
from pick2hmb.app.ports.message_consumer import MessageConsumer


def create_message_consumer(settings: Settings) -> MessageConsumer:
    backend = settings.consumer_backend.strip().lower()
    if backend == "rabbitmq":
        return RabbitMQConsumer(settings)
    raise ValueError(f"unsupported pick consumer backend: {backend!r}")
