"""Unit tests for the ordered stage runner."""

from dataclasses import dataclass, field

import pytest

from artwork_pipeline.enums import EventType
from artwork_pipeline.errors import DecodeError, PipelineError
from artwork_pipeline.models.messages import StorageEvent
from artwork_pipeline.pipeline.creation import CreationContext
from artwork_pipeline.pipeline.stages import Stage, require, run_stages
from artwork_pipeline.services.key_grammar import resolve_key


@dataclass
class Ctx:
    ran: list[str] = field(default_factory=list)


def _stage(name: str, fail: bool = False) -> Stage[Ctx]:
    async def run(ctx: Ctx) -> None:
        ctx.ran.append(name)
        if fail:
            raise DecodeError(f"{name} failed")

    return Stage(name, run)


async def test_runs_in_order():
    ctx = await run_stages("p", [_stage("a"), _stage("b"), _stage("c")], Ctx())
    assert ctx.ran == ["a", "b", "c"]


async def test_first_failure_stops_the_rest():
    ctx = Ctx()
    with pytest.raises(DecodeError, match="b failed"):
        await run_stages("p", [_stage("a"), _stage("b", fail=True), _stage("c")], ctx)
    assert ctx.ran == ["a", "b"]


def test_require_returns_value():
    assert require(0, "count") == 0


def test_require_missing_value():
    with pytest.raises(PipelineError, match="identity"):
        require(None, "identity")


async def test_append_stage_without_identity(app, config):
    event = StorageEvent(event_type=EventType.CREATED, bucket=config.raw_images_bucket, key="u/a/i/p.png")
    ctx = CreationContext(event=event, key=resolve_key(event.key))

    with pytest.raises(PipelineError):
        await app.creation._append_entry(ctx)
    assert ctx.entry is None
