"""Error kinds raised by the HMB client and the pick publish path."""
from __future__ import annotations


class HmbError(Exception):
    """Base for every failure raised by the HMB client."""


class InvalidScheme(HmbError, ValueError):
    """Sink URI does not use the hmb:// scheme."""


class TransportError(HmbError):
    """Connect, write, read or HTTP status failure talking to the bus."""


class TransportTimeoutError(TransportError):
    """A connect or read exceeded the session timeout."""


class DocumentError(HmbError):
    """Base for BSON decode and field access failures."""


class MalformedDocument(DocumentError):
    """Bytes do not form a valid document of the declared size."""


class MissingField(DocumentError):
    def __init__(self, key: str) -> None:
        super().__init__(f"missing {key}")
        self.key = key


class TypeMismatch(DocumentError):
    def __init__(self, key: str, expected: str) -> None:
        super().__init__(f"invalid {key}: expected {expected}")
        self.key = key
        self.expected = expected


class DocumentTooLarge(DocumentError):
    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(f"invalid BSON size {size} (max {max_size})")
        self.size = size
        self.max_size = max_size


class InvalidDocument(HmbError):
    """A value could not be encoded as BSON."""


class LookupMiss(HmbError):
    """No sensor location matches the pick's stream at the pick time."""
