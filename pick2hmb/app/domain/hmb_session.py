"""HMB transport session: open/send over the HTTP client port.

State machine:
  CLOSED --open()--> OPEN
  OPEN --send() failure--> CLOSED (sid cleared, next send re-opens)

Every operation POSTs on its own connection; the port's context manager releases it on
success, on a decode failure and on an I/O failure alike. ``send`` makes one attempt and
never loops; the retry policy belongs to the caller.

Responses to ``open`` are read in two phases: the 4-byte size prefix first, then, only once
the declared size has passed the bound check, the remainder of the document.

Concurrency: session state is mutated without synchronization. Callers must not run
``open``/``send`` concurrently on one instance (the message handler serializes deliveries).
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from pick2hmb.app.constants import (
    BSON_SIZE_MAX,
    SEND_RESPONSE_READ_LIMIT,
    SOCKET_TIMEOUT_SECONDS,
    SessionState,
)
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.domain.document import (
    EMPTY_DOCUMENT,
    SIZE_PREFIX_LENGTH,
    decode_document,
    document_size,
    encode_document,
    get_string,
)
from pick2hmb.app.domain.errors import (
    DocumentError,
    MalformedDocument,
    TransportError,
    TransportTimeoutError,
)
from pick2hmb.app.domain.models import BusMessage, Endpoint, Session
from pick2hmb.app.ports.http_client import (
    AbstractHttpClient,
    HttpClientError,
    HttpClientTimeoutError,
    HttpResponseStream,
    RequestTimeout,
)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class HmbSession:
    """Producer side of an HMB connection: owns the endpoint and the live Session."""

    def __init__(
        self,
        client: AbstractHttpClient,
        endpoint: Endpoint,
        *,
        timeout_seconds: float = SOCKET_TIMEOUT_SECONDS,
        max_document_size: int = BSON_SIZE_MAX,
        send_response_limit: int = SEND_RESPONSE_READ_LIMIT,
    ) -> None:
        self._client = client
        self._endpoint = endpoint
        self._timeout = RequestTimeout(connect_seconds=timeout_seconds, read_seconds=timeout_seconds)
        self._max_document_size = int(max_document_size)
        self._send_response_limit = int(send_response_limit)
        self._session: Session | None = None

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def state(self) -> SessionState:
        return SessionState.OPEN if self._session is not None else SessionState.CLOSED

    def reset(self) -> None:
        self._session = None

    async def open(self) -> Session:
        """Open a new session; on failure the session stays CLOSED and the error propagates."""
        self._session = None
        try:
            async with self._client.post(
                self._endpoint.url("open"),
                EMPTY_DOCUMENT,
                timeout=self._timeout,
                auth=self._endpoint.auth,
            ) as response:
                ack = await self._read_document(response)
        except HttpClientTimeoutError as exc:
            raise TransportTimeoutError(str(exc)) from exc
        except HttpClientError as exc:
            raise TransportError(str(exc)) from exc

        session = Session(sid=get_string(ack, "sid"), cid=get_string(ack, "cid"))
        self._session = session
        _log("hmb_session_opened", sid=session.sid, cid=session.cid)
        return session

    async def send(self, message: BusMessage) -> None:
        """POST one envelope to ``send/<sid>``, opening a session first when CLOSED."""
        payload = encode_document(message.to_document())
        try:
            session = self._session or await self.open()
            async with self._client.post(
                self._endpoint.url(f"send/{session.sid}"),
                payload,
                timeout=self._timeout,
                auth=self._endpoint.auth,
            ) as response:
                await response.read(self._send_response_limit)
        except HttpClientTimeoutError as exc:
            self._session = None
            raise TransportTimeoutError(str(exc)) from exc
        except HttpClientError as exc:
            self._session = None
            raise TransportError(str(exc)) from exc
        except (TransportError, DocumentError):
            self._session = None
            raise

    async def _read_document(self, response: HttpResponseStream) -> dict[str, Any]:
        header = await response.read(SIZE_PREFIX_LENGTH)
        size = document_size(header, max_size=self._max_document_size)
        logger.debug("BSON size (ack): {}", size)
        body = await response.read(size - SIZE_PREFIX_LENGTH)
        if len(body) != size - SIZE_PREFIX_LENGTH:
            raise MalformedDocument(
                f"truncated BSON data (ack): declared {size}, got {SIZE_PREFIX_LENGTH + len(body)} bytes"
            )
        return decode_document(header + body, max_size=self._max_document_size)
