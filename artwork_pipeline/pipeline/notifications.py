"""Inbound notification parsing.

Accepted shapes:
- S3 event notifications (``Records[].s3`` with ``eventName``)
- SNS records whose ``Sns.Message`` is a ribbon prefix
- SQS records whose ``body`` holds any of the above as JSON
- normalized messages: ``{eventType, bucket, key, size}`` or ``{prefix}``
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError as ModelValidationError

from artwork_pipeline.enums import EventType
from artwork_pipeline.errors import InvalidEvent
from artwork_pipeline.models.messages import RibbonRequest, StorageEvent

Notification = StorageEvent | RibbonRequest

_CREATED_RE = re.compile(r"^ObjectCreated:", re.IGNORECASE)
_REMOVED_RE = re.compile(r"^ObjectRemoved:", re.IGNORECASE)


def event_type_from_name(event_name: str) -> EventType:
    """Map an S3 ``eventName`` (or a normalized type) to an EventType."""
    if _CREATED_RE.match(event_name):
        return EventType.CREATED
    if _REMOVED_RE.match(event_name):
        return EventType.REMOVED
    try:
        return EventType(event_name.lower())
    except ValueError:
        raise InvalidEvent(f"Unsupported event type: {event_name}", event_name=event_name) from None


def _from_s3_record(record: dict[str, Any]) -> StorageEvent:
    try:
        s3 = record["s3"]
        return StorageEvent(
            event_type=event_type_from_name(str(record.get("eventName", ""))),
            bucket=s3["bucket"]["name"],
            key=s3["object"]["key"],
            size=s3["object"].get("size"),
        )
    except (KeyError, TypeError, ModelValidationError) as e:
        raise InvalidEvent(f"Malformed storage notification: {e}") from e


def _from_message(message: Any) -> list[Notification]:
    if isinstance(message, str):
        text = message.strip()
        if text.startswith("{"):
            try:
                return parse_notification(json.loads(text))
            except json.JSONDecodeError as e:
                raise InvalidEvent(f"Unparseable message body: {e}") from e
        if not text:
            raise InvalidEvent("Empty ribbon prefix")
        # A bare string is a ribbon prefix.
        return [RibbonRequest(prefix=text)]
    return parse_notification(message)


def parse_notification(payload: Any) -> list[Notification]:
    """Parse an inbound payload into notifications, in delivery order.

    S3 test events yield an empty list.

    Raises:
        InvalidEvent: For payloads of no recognised shape.
    """
    if not isinstance(payload, dict):
        raise InvalidEvent(f"Unsupported notification payload: {type(payload).__name__}")

    if payload.get("Event") == "s3:TestEvent":
        return []

    if "Records" in payload:
        notifications: list[Notification] = []
        for record in payload["Records"] or []:
            if not isinstance(record, dict):
                raise InvalidEvent("Notification record is not an object")
            if "s3" in record:
                notifications.append(_from_s3_record(record))
            elif "Sns" in record:
                notifications.extend(_from_message(record["Sns"].get("Message", "")))
            elif "body" in record:
                notifications.extend(_from_message(record["body"]))
            else:
                raise InvalidEvent("Unrecognised notification record")
        return notifications

    try:
        if "prefix" in payload:
            return [RibbonRequest.model_validate(payload)]
        if "eventType" in payload or "event_type" in payload:
            data = dict(payload)
            raw_type = data.pop("eventType", None) or data.pop("event_type", "")
            return [StorageEvent.model_validate({**data, "eventType": event_type_from_name(str(raw_type))})]
    except ModelValidationError as e:
        raise InvalidEvent(f"Malformed notification: {e}") from e

    raise InvalidEvent("Unrecognised notification payload")
