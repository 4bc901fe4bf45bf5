"""Removal pipeline: delete derivatives, resolve identity, drop index entry."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from artwork_pipeline.errors import ObjectNotFound
from artwork_pipeline.models.artifacts import S3Location
from artwork_pipeline.models.domain import IdentityRecord, ImageEntry, ObjectKey
from artwork_pipeline.models.messages import StorageEvent
from artwork_pipeline.pipeline.stages import Stage, require, run_stages
from artwork_pipeline.services.artwork_index import ArtworkIndexUpdater
from artwork_pipeline.services.identity_resolver import IdentityResolver
from artwork_pipeline.stores.storage import StorageGateway

logger = logging.getLogger(__name__)


@dataclass
class RemovalContext:
    event: StorageEvent
    key: ObjectKey
    deleted: list[S3Location] = field(default_factory=list)
    missing: list[S3Location] = field(default_factory=list)
    identity: IdentityRecord | None = None
    removed_entry: ImageEntry | None = None


class RemovalPipeline:
    """Cleans up after a raw image is deleted.

    Derivative deletion happens first and is not undone if a later stage
    fails.
    """

    def __init__(
        self,
        storage: StorageGateway,
        identity_resolver: IdentityResolver,
        index_updater: ArtworkIndexUpdater,
        derivative_buckets: Sequence[str],
    ) -> None:
        self._storage = storage
        self._identity_resolver = identity_resolver
        self._index_updater = index_updater
        self._buckets = list(derivative_buckets)
        self._stages: list[Stage[RemovalContext]] = [
            Stage("delete_derivatives", self._delete_derivatives),
            Stage("resolve_identity", self._resolve_identity),
            Stage("remove_entry", self._remove_entry),
        ]

    async def run(self, event: StorageEvent, key: ObjectKey) -> RemovalContext:
        return await run_stages("removal", self._stages, RemovalContext(event=event, key=key))

    async def _delete_one(self, ctx: RemovalContext, bucket: str) -> None:
        # Older accounts stored derivatives under the raw key.
        for candidate in dict.fromkeys([ctx.key.destination_key, ctx.key.raw]):
            try:
                await self._storage.delete(bucket, candidate)
            except ObjectNotFound:
                continue
            ctx.deleted.append(S3Location(bucket=bucket, key=candidate))
            return
        logger.warning(
            "No derivative to delete in %s for %s (raw key %s)",
            bucket,
            ctx.key.destination_key,
            ctx.key.raw,
        )
        ctx.missing.append(S3Location(bucket=bucket, key=ctx.key.destination_key))

    async def _delete_derivatives(self, ctx: RemovalContext) -> None:
        for bucket in self._buckets:
            await self._delete_one(ctx, bucket)

    async def _resolve_identity(self, ctx: RemovalContext) -> None:
        ctx.identity = await self._identity_resolver.resolve(ctx.key.identity_token)

    async def _remove_entry(self, ctx: RemovalContext) -> None:
        identity = require(ctx.identity, "identity")
        ctx.removed_entry = await self._index_updater.remove(
            identity.internal_ref,
            ctx.key.artwork_id,
            ctx.key.destination_key,
            ctx.key.raw,
        )
