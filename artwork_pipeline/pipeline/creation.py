"""Creation pipeline: download, resize, upload, resolve identity, index."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from artwork_pipeline.models.artifacts import S3Location
from artwork_pipeline.models.domain import (
    DerivativeSet,
    IdentityRecord,
    ImageEntry,
    ObjectKey,
    SizeTarget,
)
from artwork_pipeline.models.messages import StorageEvent
from artwork_pipeline.pipeline.stages import Stage, require, run_stages
from artwork_pipeline.services.artwork_index import ArtworkIndexUpdater
from artwork_pipeline.services.derivative_generator import DerivativeGenerator
from artwork_pipeline.services.identity_resolver import IdentityResolver
from artwork_pipeline.stores.storage import StorageGateway


@dataclass
class CreationContext:
    event: StorageEvent
    key: ObjectKey
    source: bytes = b""
    derivatives: DerivativeSet | None = None
    uploaded: list[S3Location] = field(default_factory=list)
    identity: IdentityRecord | None = None
    entry: ImageEntry | None = None


class CreationPipeline:
    """Turns a newly uploaded raw image into derivatives plus an index entry."""

    def __init__(
        self,
        storage: StorageGateway,
        generator: DerivativeGenerator,
        identity_resolver: IdentityResolver,
        index_updater: ArtworkIndexUpdater,
        targets: Sequence[SizeTarget],
    ) -> None:
        self._storage = storage
        self._generator = generator
        self._identity_resolver = identity_resolver
        self._index_updater = index_updater
        self._targets = list(targets)
        self._stages: list[Stage[CreationContext]] = [
            Stage("download", self._download),
            Stage("generate", self._generate),
            Stage("upload", self._upload),
            Stage("resolve_identity", self._resolve_identity),
            Stage("append_entry", self._append_entry),
        ]

    async def run(self, event: StorageEvent, key: ObjectKey) -> CreationContext:
        return await run_stages("creation", self._stages, CreationContext(event=event, key=key))

    async def _download(self, ctx: CreationContext) -> None:
        ctx.source = await self._storage.get(ctx.event.bucket, ctx.key.raw)

    async def _generate(self, ctx: CreationContext) -> None:
        ctx.derivatives = await self._generator.generate_async(
            ctx.source,
            self._targets,
            size_bytes=ctx.event.size if ctx.event.size is not None else len(ctx.source),
        )

    async def _upload(self, ctx: CreationContext) -> None:
        derivatives = require(ctx.derivatives, "derivatives")
        for derivative in derivatives.derivatives:
            bucket = derivative.target.bucket
            await self._storage.put(
                bucket, ctx.key.destination_key, derivative.data, derivative.content_type
            )
            ctx.uploaded.append(S3Location(bucket=bucket, key=ctx.key.destination_key))

    async def _resolve_identity(self, ctx: CreationContext) -> None:
        ctx.identity = await self._identity_resolver.resolve(ctx.key.identity_token)

    async def _append_entry(self, ctx: CreationContext) -> None:
        identity = require(ctx.identity, "identity")
        derivatives = require(ctx.derivatives, "derivatives")
        ctx.entry = ImageEntry(
            derived_key=ctx.key.destination_key,
            raw_key=ctx.key.raw,
            image_id=ctx.key.image_id,
            filename=ctx.key.filename,
            metadata=derivatives.source_metadata,
        )
        await self._index_updater.append(identity.internal_ref, ctx.key.artwork_id, ctx.entry)
