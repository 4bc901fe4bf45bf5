"""Inbound notification and invocation result models."""

from typing import Any

from pydantic import Field

from artwork_pipeline.enums import EventType
from artwork_pipeline.models.base import JsonModel


class StorageEvent(JsonModel):
    """Per-image storage change notification.

    ``key`` is the raw object key as delivered (possibly percent- and
    ``+``-encoded).
    """

    event_type: EventType
    bucket: str
    key: str
    size: int | None = Field(default=None, ge=0)


class RibbonRequest(JsonModel):
    """Request to (re)build the ribbon preview for a storage prefix."""

    prefix: str


class InvocationResult(JsonModel):
    """Outcome of one invocation.

    Failures carry the structured error body so the invoking
    infrastructure can decide on re-delivery from ``error["retriable"]``.
    """

    status_code: int = 200
    message: str = ""
    error: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retriable(self) -> bool:
        return bool(self.error and self.error.get("retriable"))
