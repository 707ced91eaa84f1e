"""HTTP client port: contract for POSTing a body and reading the response incrementally.

Domain code depends on this port; infrastructure (httpx) implements it. Every ``post`` uses
its own connection, released when the context exits, whether the body completes or raises.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncContextManager, Protocol, runtime_checkable


class HttpClientError(Exception):
    """Base for HTTP client failures (status, network, etc.)."""


class HttpClientTimeoutError(HttpClientError):
    """Raised when connect, write or read times out."""


@dataclass(frozen=True)
class RequestTimeout:
    """Connect and read timeouts in seconds."""

    connect_seconds: float
    read_seconds: float


@runtime_checkable
class HttpResponseStream(Protocol):
    """Response whose status was already checked (2xx) and whose body is read on demand."""

    @property
    def status_code(self) -> int: ...

    async def read(self, size: int) -> bytes:
        """Return up to ``size`` bytes; fewer only when the body ends first."""
        ...


@runtime_checkable
class AbstractHttpClient(Protocol):
    """Port: POST a body on a fresh connection. Implementations live in infrastructure."""

    def post(
        self,
        url: str,
        content: bytes,
        *,
        timeout: RequestTimeout,
        auth: tuple[str, str] | None = None,
    ) -> AsyncContextManager[HttpResponseStream]:
        """Open, POST and yield the response; raise HttpClientTimeoutError or HttpClientError."""
        ...

    async def close(self) -> None:
        """Release resources. No-op allowed if nothing to close."""
        ...
