"""Fakes and builders shared by the unit tests."""
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import bson

from pick2hmb.app.domain.models import CreationInfo, Pick, WaveformStreamID, parse_time
from pick2hmb.app.ports.http_client import RequestTimeout


def ack_document(sid: str = "abc", cid: str = "client-1", **extra: Any) -> bytes:
    return bson.encode({"sid": sid, "cid": cid, **extra})


@dataclass
class PostedRequest:
    url: str
    content: bytes
    timeout: RequestTimeout
    auth: tuple[str, str] | None


class FakeResponseStream:
    """Implements HttpResponseStream over a fixed body; records every read size."""

    def __init__(self, body: bytes, status_code: int = 200) -> None:
        self._body = body
        self._pos = 0
        self.status_code = status_code
        self.read_sizes: list[int] = []

    async def read(self, size: int) -> bytes:
        self.read_sizes.append(size)
        chunk = self._body[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk


class FakeHttpClient:
    """Implements AbstractHttpClient; each post consumes the next scripted body or exception."""

    def __init__(self, responses: list[bytes | Exception] | None = None) -> None:
        self.responses: list[bytes | Exception] = list(responses or [])
        self.requests: list[PostedRequest] = []
        self.streams: list[FakeResponseStream] = []
        self.open_connections = 0
        self.closed_connections = 0

    @asynccontextmanager
    async def post(
        self,
        url: str,
        content: bytes,
        *,
        timeout: RequestTimeout,
        auth: tuple[str, str] | None = None,
    ) -> AsyncIterator[FakeResponseStream]:
        self.requests.append(PostedRequest(url=url, content=content, timeout=timeout, auth=auth))
        if not self.responses:
            raise AssertionError(f"unexpected request to {url}")
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        stream = FakeResponseStream(outcome)
        self.streams.append(stream)
        self.open_connections += 1
        try:
            yield stream
        finally:
            self.open_connections -= 1
            self.closed_connections += 1

    async def close(self) -> None:
        return

    def urls(self) -> list[str]:
        return [r.url for r in self.requests]


class FailingInventory:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc
        self.calls = 0

    async def get_sensor_location(self, network, station, location, time):  # noqa: ANN001
        self.calls += 1
        raise self._exc

    async def close(self) -> None:
        return


def make_pick(
    *,
    public_id: str = "Pick/20200101000000.000000.1",
    network: str = "XX",
    station: str = "AAA",
    location: str = "00",
    channel: str = "HHZ",
    time: str = "2020-01-01T00:00:00Z",
    creation_info: CreationInfo | None = None,
    phase_hint: str | None = "P",
) -> Pick:
    return Pick(
        public_id=public_id,
        time=parse_time(time),
        waveform_id=WaveformStreamID(network, station, location, channel),
        phase_hint=phase_hint,
        evaluation_mode="automatic",
        creation_info=creation_info,
    )
