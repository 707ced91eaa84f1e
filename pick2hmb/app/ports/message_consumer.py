"""Port: source of upstream pick deliveries (the subscription the worker listens on)."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

DeliveryHandler = Callable[[Any], Awaitable[None]]


class MessageConsumer(Protocol):
    async def connect(self) -> None:
        """Attach to the pick subscription; raise once connect attempts are exhausted."""
        ...

    async def start_consuming(self, handler: DeliveryHandler) -> str:
        """Deliver each pick message to ``handler``; return the tag used by cancel()."""
        ...

    async def cancel(self, consumer_tag: str) -> None: ...

    async def close(self) -> None: ...
