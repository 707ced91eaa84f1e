from __future__ import annotations

import json
from typing import Any, Mapping

from loguru import logger

from pick2hmb.app.application.pick_publisher import PickPublisher
from pick2hmb.app.constants import MESSAGE_TYPE, NOTIFIER_OPERATION
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.domain.models import Pick
from pick2hmb.app.ports.incoming_message import IncomingMessage

PICK_CLASS = "Pick"


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class PickMessageService:
    """
    Handles upstream messages: extracts picks and publishes each one in delivery order.

    Data messages publish every Pick object they carry; notifier messages publish picks
    that were added or updated (removals are ignored). Unknown message types are acked
    without effect. Publishing is best effort, so a message is acked once all of its picks
    have been handled. A malformed body raises ValueError before anything is published.
    """

    def __init__(self, publisher: PickPublisher) -> None:
        self._publisher = publisher

    async def process_message(self, message: IncomingMessage) -> None:
        picks = self._deserialize_message(message.body)
        _log("message_received", pick_count=len(picks))

        for pick in picks:
            await self._publisher.publish(pick)

        await message.ack()

    def _deserialize_message(self, raw_body: bytes) -> list[Pick]:
        try:
            body = json.loads(raw_body.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"message is not valid JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise ValueError("message must be a JSON object")

        message_type = str(body.get("type", "")).strip().lower()

        if message_type == MESSAGE_TYPE.DATA:
            objects = body.get("objects") or []
            return [Pick.from_document(obj) for obj in objects if _is_pick(obj)]

        if message_type == MESSAGE_TYPE.NOTIFIER:
            picks = []
            for notifier in body.get("notifiers") or []:
                if not isinstance(notifier, Mapping):
                    continue
                operation = str(notifier.get("operation", "")).strip().lower()
                obj = notifier.get("object")
                if operation in NOTIFIER_OPERATION.PUBLISHED and _is_pick(obj):
                    picks.append(Pick.from_document(obj))
            return picks

        _log("message_ignored", message_type=message_type)
        return []


def _is_pick(obj: Any) -> bool:
    return isinstance(obj, Mapping) and obj.get("class") == PICK_CLASS
