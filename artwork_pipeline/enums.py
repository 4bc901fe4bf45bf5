"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class EventType(StrEnum):
    """Storage change notification kinds."""

    CREATED = "created"
    REMOVED = "removed"


class SizeTargetName(StrEnum):
    """Named derivative sizes, in the order they are generated."""

    THUMB = "thumb"
    IMAGE = "image"
    LARGE = "large"


class ErrorCode(StrEnum):
    """Structured error codes returned in failed invocation results."""

    INVALID_EVENT = "invalid_event"
    MALFORMED_KEY = "malformed_key"
    IDENTITY_NOT_FOUND = "identity_not_found"
    ARTWORK_NOT_FOUND = "artwork_not_found"
    ENTRY_NOT_FOUND = "entry_not_found"
    OBJECT_NOT_FOUND = "object_not_found"
    DECODE_ERROR = "decode_error"
    TRANSIENT_INFRA = "transient_infra"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    TIMEOUT = "timeout"
