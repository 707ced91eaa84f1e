"""Port: one upstream delivery, independent of the broker client."""
from __future__ import annotations

from typing import Protocol


class IncomingMessage(Protocol):
    @property
    def body(self) -> bytes: ...

    @property
    def routing_key(self) -> str: ...

    @property
    def settled(self) -> bool: ...

    async def ack(self) -> None: ...

    async def reject(self) -> None: ...
