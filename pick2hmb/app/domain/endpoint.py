"""Sink address parsing: ``hmb://[user[:password]@]host[:port][/path]``."""
from __future__ import annotations

from pick2hmb.app.domain.errors import InvalidScheme
from pick2hmb.app.domain.models import Endpoint

HMB_SCHEME = "hmb"


def parse_endpoint(uri: str) -> Endpoint:
    """Split a sink URI into host, slash-terminated path and credentials.

    No percent-decoding and no default port: the host part is kept verbatim.
    """
    scheme, sep, address = uri.partition("://")
    if not sep or scheme != HMB_SCHEME:
        raise InvalidScheme(f"invalid sink: {uri!r}")

    user = password = ""
    host = address
    at = address.find("@")
    slash = address.find("/")
    if at != -1 and (slash == -1 or at < slash):
        login, host = address[:at], address[at + 1:]
        user, _, password = login.partition(":")

    host, slash, path = host.partition("/")
    if slash:
        path = "/" + path
        if not path.endswith("/"):
            path += "/"
    else:
        path = "/"

    return Endpoint(host=host, path=path, user=user, password=password)
