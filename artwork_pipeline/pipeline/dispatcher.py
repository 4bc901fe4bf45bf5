"""Event dispatcher: routes notifications and shapes invocation results.

Each call is one independent invocation with its own trace id and
wall-clock budget. Pipeline failures become structured results; the
``retriable`` flag on the error tells the caller whether re-delivery can
help.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from artwork_pipeline.enums import EventType
from artwork_pipeline.errors import (
    DecodeError,
    InvalidEvent,
    InvocationTimeout,
    NotFoundError,
    PipelineError,
    ValidationError,
)
from artwork_pipeline.models.messages import InvocationResult, RibbonRequest, StorageEvent
from artwork_pipeline.observability.error_log_file import log_invocation_error
from artwork_pipeline.observability.trace_context import new_trace_id, set_actor, set_trace
from artwork_pipeline.observability.trace_logging import trace_event
from artwork_pipeline.pipeline.creation import CreationPipeline
from artwork_pipeline.pipeline.notifications import Notification
from artwork_pipeline.pipeline.removal import RemovalPipeline
from artwork_pipeline.services.key_grammar import resolve_key
from artwork_pipeline.services.ribbon_compositor import RibbonCompositor

logger = logging.getLogger(__name__)


def status_code_for(error: PipelineError) -> int:
    if isinstance(error, InvocationTimeout):
        return 504
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, DecodeError):
        return 422
    return 503


class EventDispatcher:
    """Classifies notifications and runs the matching pipeline."""

    def __init__(
        self,
        creation: CreationPipeline,
        removal: RemovalPipeline,
        ribbon: RibbonCompositor,
        *,
        derivative_buckets: Sequence[str],
        timeout_seconds: float = 60.0,
    ) -> None:
        self._creation = creation
        self._removal = removal
        self._ribbon = ribbon
        self._derivative_buckets = frozenset(derivative_buckets)
        self._timeout_seconds = timeout_seconds

    async def dispatch(
        self,
        notification: Notification,
        *,
        timeout_seconds: float | None = None,
    ) -> InvocationResult:
        """Run one notification as an invocation."""
        if isinstance(notification, RibbonRequest):
            return await self.dispatch_ribbon(notification, timeout_seconds=timeout_seconds)
        return await self.dispatch_storage_event(notification, timeout_seconds=timeout_seconds)

    async def dispatch_storage_event(
        self,
        event: StorageEvent,
        *,
        timeout_seconds: float | None = None,
    ) -> InvocationResult:
        context = {"event_type": str(event.event_type), "bucket": event.bucket, "key": event.key}
        return await self._invoke(
            str(event.event_type),
            lambda: self._route(event),
            context,
            timeout_seconds,
        )

    async def dispatch_ribbon(
        self,
        request: RibbonRequest,
        *,
        timeout_seconds: float | None = None,
    ) -> InvocationResult:
        return await self._invoke(
            "ribbon",
            lambda: self._build_ribbon(request),
            {"prefix": request.prefix},
            timeout_seconds,
        )

    async def _route(self, event: StorageEvent) -> str:
        if event.bucket in self._derivative_buckets:
            raise InvalidEvent(
                "Source and destination buckets are the same.", bucket=event.bucket
            )

        key = resolve_key(event.key)
        set_actor(key.identity_token)

        if event.event_type == EventType.CREATED:
            ctx = await self._creation.run(event, key)
            return (
                f"Successfully resized {event.bucket}/{key.raw} into buckets: "
                f"{', '.join(loc.bucket for loc in ctx.uploaded)}"
            )
        if event.event_type == EventType.REMOVED:
            await self._removal.run(event, key)
            return f"Successfully removed {key.destination_key} from buckets"
        raise InvalidEvent(f"Unsupported event type: {event.event_type}")

    async def _build_ribbon(self, request: RibbonRequest) -> str:
        result = await self._ribbon.build(request.prefix)
        if result is None:
            return f"No thumbnails under {request.prefix}; no ribbon produced"
        return f"Created {result.location.key}"

    async def _invoke(
        self,
        operation: str,
        run: Callable[[], Awaitable[str]],
        context: dict[str, Any],
        timeout_seconds: float | None,
    ) -> InvocationResult:
        trace_id = new_trace_id()
        set_trace(trace_id=trace_id, actor_id=None)
        set_actor(None)
        budget = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        trace_event("invocation.start", operation=operation, **context)

        if budget <= 0:
            error: PipelineError = InvocationTimeout(
                "Invocation budget ran out before it could start", **context
            )
        else:
            try:
                message = await asyncio.wait_for(run(), timeout=budget)
            except TimeoutError:
                error = InvocationTimeout(f"Invocation exceeded its {budget:.1f}s budget", **context)
            except PipelineError as e:
                error = e
            else:
                logger.info(message)
                trace_event("invocation.end", operation=operation, status_code=200)
                return InvocationResult(status_code=200, message=message)

        error.context = {**context, **error.context}
        log_invocation_error(operation, error, trace_id=trace_id, extra=error.context)
        trace_event(
            "invocation.error",
            operation=operation,
            error=error.message,
            error_type=type(error).__name__,
            retriable=error.retriable,
        )
        return InvocationResult(
            status_code=status_code_for(error),
            message=error.message,
            error=error.to_dict(),
        )
