"""HTTP client factory: keeps the httpx import out of composition."""
from __future__ import annotations

from pick2hmb.app.infrastructure.http.httpx_client import HttpxHttpClient
from pick2hmb.app.ports.http_client import AbstractHttpClient


def create_http_client() -> AbstractHttpClient:
    """Timeouts and credentials are supplied per request by the HMB session."""
    return HttpxHttpClient()
