"""Unit tests for the httpx adapter and an HMB exchange over httpx.MockTransport."""
from __future__ import annotations

import base64

import bson
import httpx
import pytest

from pick2hmb.app.application.pick_publisher import PickPublisher
from pick2hmb.app.constants import SessionState
from pick2hmb.app.domain.endpoint import parse_endpoint
from pick2hmb.app.domain.errors import TransportError
from pick2hmb.app.domain.hmb_session import HmbSession
from pick2hmb.app.domain.models import BusMessage
from pick2hmb.app.infrastructure.http.httpx_client import HttpxHttpClient
from pick2hmb.app.ports.http_client import (
    HttpClientError,
    HttpClientTimeoutError,
    RequestTimeout,
)
from tests.fakes import make_pick

TIMEOUT = RequestTimeout(connect_seconds=5.0, read_seconds=5.0)


def _basic(user: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


class FakeHmbServer:
    """Minimal HMB producer endpoint served through httpx.MockTransport."""

    def __init__(self, *, fail_sends: int = 0) -> None:
        self.requests: list[httpx.Request] = []
        self.sent: list[dict] = []
        self.opened = 0
        self._fail_sends = fail_sends

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/open"):
            self.opened += 1
            return httpx.Response(200, content=bson.encode({"sid": f"s{self.opened}", "cid": "c1"}))
        if "/send/" in path:
            if self._fail_sends:
                self._fail_sends -= 1
                return httpx.Response(410, content=b"session expired")
            self.sent.append(bson.decode(request.content))
            return httpx.Response(200, content=b"")
        return httpx.Response(404)


@pytest.mark.asyncio
async def test_post_streams_body_in_requested_pieces():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"0123456789")

    client = HttpxHttpClient(transport=httpx.MockTransport(handler))

    async with client.post("http://bus/open", b"\x05\x00\x00\x00\x00", timeout=TIMEOUT) as response:
        assert response.status_code == 200
        assert await response.read(4) == b"0123"
        assert await response.read(3) == b"456"
        assert await response.read(100) == b"789"
        assert await response.read(1) == b""


@pytest.mark.asyncio
async def test_post_sends_body_and_basic_auth():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    client = HttpxHttpClient(transport=httpx.MockTransport(handler))

    async with client.post("http://bus/send/abc", b"payload", timeout=TIMEOUT, auth=("user", "pw")):
        pass

    assert seen[0].method == "POST"
    assert seen[0].content == b"payload"
    assert seen[0].headers["Authorization"] == _basic("user", "pw")


@pytest.mark.asyncio
async def test_non_success_status_raises_client_error():
    client = HttpxHttpClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    with pytest.raises(HttpClientError, match="http status 500"):
        async with client.post("http://bus/open", b"", timeout=TIMEOUT):
            pass


@pytest.mark.asyncio
async def test_connect_error_maps_to_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = HttpxHttpClient(transport=httpx.MockTransport(handler))

    with pytest.raises(HttpClientError) as excinfo:
        async with client.post("http://bus/open", b"", timeout=TIMEOUT):
            pass
    assert not isinstance(excinfo.value, HttpClientTimeoutError)


@pytest.mark.asyncio
async def test_timeout_maps_to_timeout_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = HttpxHttpClient(transport=httpx.MockTransport(handler))

    with pytest.raises(HttpClientTimeoutError):
        async with client.post("http://bus/open", b"", timeout=TIMEOUT):
            pass


@pytest.mark.asyncio
async def test_session_over_httpx_sends_credentials_on_every_request():
    server = FakeHmbServer()
    client = HttpxHttpClient(transport=httpx.MockTransport(server))
    session = HmbSession(client, parse_endpoint("hmb://user:pw@bus:8000/hmb"))
    message = BusMessage(
        type="PICK",
        queue="PICK",
        starttime="2020-01-01T00:00:00Z",
        endtime="2020-01-01T00:00:00Z",
        data={"latitude": 10.0},
    )

    await session.send(message)

    assert [r.url.path for r in server.requests] == ["/hmb/open", "/hmb/send/s1"]
    assert all(r.headers["Authorization"] == _basic("user", "pw") for r in server.requests)
    assert server.sent == [message.to_document()]


@pytest.mark.asyncio
async def test_session_over_httpx_rejected_send_clears_session():
    server = FakeHmbServer(fail_sends=1)
    session = HmbSession(
        HttpxHttpClient(transport=httpx.MockTransport(server)),
        parse_endpoint("hmb://bus:8000/"),
    )
    message = BusMessage(type="PICK", queue="PICK", starttime="t", endtime="t")

    with pytest.raises(TransportError, match="410"):
        await session.send(message)
    await session.send(message)

    assert [r.url.path for r in server.requests] == ["/open", "/send/s1", "/open", "/send/s2"]
    assert "Authorization" not in server.requests[0].headers


@pytest.mark.asyncio
async def test_unusable_url_maps_to_client_error():
    client = HttpxHttpClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    with pytest.raises(HttpClientError):
        async with client.post("http://bus:notaport/open", b"", timeout=TIMEOUT):
            pass


@pytest.mark.asyncio
async def test_error_raised_while_reading_is_not_remapped():
    client = HttpxHttpClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    with pytest.raises(ValueError, match="bad ack"):
        async with client.post("http://bus/open", b"", timeout=TIMEOUT):
            raise ValueError("bad ack")


@pytest.mark.asyncio
@pytest.mark.parametrize("sink", ["hmb://bus:notaport/", "hmb://"])
async def test_publish_with_unusable_sink_drops_pick_without_raising(sink, inventory):
    server = FakeHmbServer()
    session = HmbSession(HttpxHttpClient(transport=httpx.MockTransport(server)), parse_endpoint(sink))

    await PickPublisher(session, inventory).publish(make_pick())

    assert server.sent == []
    assert session.state == SessionState.CLOSED
