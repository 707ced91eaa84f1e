"""Worker-level constants shared across modules."""
from __future__ import annotations

from enum import Enum

BSON_SIZE_MAX = 16 * 1024 * 1024
SOCKET_TIMEOUT_SECONDS = 60.0
SEND_RESPONSE_READ_LIMIT = 1024
MAX_SEND_ATTEMPTS = 2

DEFAULT_SINK = "hmb://localhost:8000/"
PICK_QUEUE = "PICK"


class SessionState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"


class NOTIFIER_OPERATION:
    ADD = "add"
    UPDATE = "update"

    PUBLISHED = (ADD, UPDATE)


class MESSAGE_TYPE:
    DATA = "data"
    NOTIFIER = "notifier"
