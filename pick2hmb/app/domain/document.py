"""BSON document codec for the HMB wire format.

Encoding and parsing are delegated to pymongo's ``bson`` package. This module adds the size
gate applied before a body is parsed, and typed field access that raises the HMB error kinds.
"""
from __future__ import annotations

from typing import Any, Mapping

import bson
from bson.errors import BSONError

from pick2hmb.app.constants import BSON_SIZE_MAX
from pick2hmb.app.domain.errors import (
    DocumentTooLarge,
    InvalidDocument,
    MalformedDocument,
    MissingField,
    TypeMismatch,
)

SIZE_PREFIX_LENGTH = 4
# int32 size prefix plus the terminating null byte
MIN_DOCUMENT_SIZE = 5


def encode_document(fields: Mapping[str, Any]) -> bytes:
    """Encode an ordered mapping; keys keep their insertion order on the wire."""
    try:
        return bson.encode(fields)
    except (BSONError, TypeError, ValueError) as exc:
        raise InvalidDocument(f"failed to encode document: {exc}") from exc


EMPTY_DOCUMENT = encode_document({})


def document_size(header: bytes, *, max_size: int = BSON_SIZE_MAX) -> int:
    """Declared total size from a document's 4-byte little-endian prefix."""
    if len(header) < SIZE_PREFIX_LENGTH:
        raise MalformedDocument(f"truncated BSON size prefix ({len(header)} bytes)")
    size = int.from_bytes(header[:SIZE_PREFIX_LENGTH], "little", signed=True)
    if size > max_size:
        raise DocumentTooLarge(size, max_size)
    if size < MIN_DOCUMENT_SIZE:
        raise MalformedDocument(f"invalid BSON size {size}")
    return size


def decode_document(data: bytes, *, max_size: int = BSON_SIZE_MAX) -> dict[str, Any]:
    size = document_size(data, max_size=max_size)
    if size != len(data):
        raise MalformedDocument(f"BSON size mismatch: declared {size}, got {len(data)} bytes")
    try:
        return bson.decode(data)
    except (BSONError, ValueError) as exc:
        raise MalformedDocument(f"invalid BSON data: {exc}") from exc


def get_string(doc: Mapping[str, Any], key: str) -> str:
    if key not in doc:
        raise MissingField(key)
    value = doc[key]
    if not isinstance(value, str):
        raise TypeMismatch(key, "string")
    return value

