"""Concrete HTTP client implementation using httpx (injected where AbstractHttpClient is needed)."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from pick2hmb.app.ports.http_client import (
    AbstractHttpClient,
    HttpClientError,
    HttpClientTimeoutError,
    HttpResponseStream,
    RequestTimeout,
)


class _HttpxResponseStream:
    """Adapts a streaming httpx.Response to the HttpResponseStream protocol."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._chunks = response.aiter_bytes()
        self._buffer = b""
        self._exhausted = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def read(self, size: int) -> bytes:
        while len(self._buffer) < size and not self._exhausted:
            try:
                self._buffer += await self._chunks.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data


class HttpxHttpClient(AbstractHttpClient):
    """AbstractHttpClient implementation opening one httpx.AsyncClient per request.

    No connection pool outlives a request: the client, and with it the socket, is closed
    when the ``post`` context exits.
    """

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @asynccontextmanager
    async def post(
        self,
        url: str,
        content: bytes,
        *,
        timeout: RequestTimeout,
        auth: tuple[str, str] | None = None,
    ) -> AsyncIterator[HttpResponseStream]:
        httpx_timeout = httpx.Timeout(
            connect=timeout.connect_seconds,
            read=timeout.read_seconds,
            write=timeout.read_seconds,
            pool=timeout.connect_seconds,
        )
        streaming = False
        try:
            async with httpx.AsyncClient(
                auth=auth,
                timeout=httpx_timeout,
                transport=self._transport,
            ) as client:
                async with client.stream("POST", url, content=content) as response:
                    try:
                        response.raise_for_status()
                    except httpx.HTTPStatusError as exc:
                        raise HttpClientError(
                            f"http status {exc.response.status_code} for {exc.request.url}"
                        ) from exc
                    streaming = True
                    yield _HttpxResponseStream(response)
        except httpx.TimeoutException as exc:
            raise HttpClientTimeoutError(f"timeout while posting to {url}") from exc
        except httpx.HTTPError as exc:
            raise HttpClientError(f"http post failed for {url}: {exc}") from exc
        except (httpx.InvalidURL, ValueError) as exc:
            # unusable host or port; errors raised by the caller's body pass through
            if streaming:
                raise
            raise HttpClientError(f"invalid request url {url}: {exc}") from exc

    async def close(self) -> None:
        return
