"""Ordered stage runner.

A pipeline is a list of named async stages sharing one context object.
Each stage records its result on the context; the first stage to raise
aborts the rest, and nothing already done is rolled back.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from artwork_pipeline.errors import PipelineError
from artwork_pipeline.observability.trace_logging import trace_event

logger = logging.getLogger(__name__)

C = TypeVar("C")
T = TypeVar("T")


def require(value: T | None, name: str) -> T:
    """Return a context field an earlier stage was expected to fill in."""
    if value is None:
        raise PipelineError(f"Stage input {name!r} was never produced")
    return value


@dataclass(frozen=True)
class Stage(Generic[C]):
    name: str
    run: Callable[[C], Awaitable[None]]


async def run_stages(pipeline: str, stages: Sequence[Stage[C]], context: C) -> C:
    """Run ``stages`` in order against ``context``.

    Returns:
        The context, after every stage succeeded.

    Raises:
        PipelineError: The first stage failure, unchanged.
    """
    for stage in stages:
        trace_event("stage.start", pipeline=pipeline, stage=stage.name)
        started = time.monotonic()
        try:
            await stage.run(context)
        except PipelineError as e:
            trace_event(
                "stage.error",
                pipeline=pipeline,
                stage=stage.name,
                error=e.message,
                error_type=type(e).__name__,
            )
            logger.debug("Stage %s.%s failed; skipping remaining stages", pipeline, stage.name)
            raise
        trace_event(
            "stage.end",
            pipeline=pipeline,
            stage=stage.name,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    return context
