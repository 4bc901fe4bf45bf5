"""Component wiring.

Builds every pipeline component from configuration with explicit
dependency injection. Storage and document store implementations are
parameters, so tests and local runs can pass the in-memory ones.
"""

import asyncio
import logging
from typing import Any

from artwork_pipeline.config import PipelineConfig
from artwork_pipeline.dao.artwork_dao import ArtworkDAO
from artwork_pipeline.dao.identity_dao import IdentityDAO
from artwork_pipeline.models.messages import InvocationResult
from artwork_pipeline.observability.trace_logging import configure_tracing
from artwork_pipeline.pipeline.creation import CreationPipeline
from artwork_pipeline.pipeline.dispatcher import EventDispatcher
from artwork_pipeline.pipeline.notifications import Notification, parse_notification
from artwork_pipeline.pipeline.removal import RemovalPipeline
from artwork_pipeline.services.artwork_index import ArtworkIndexUpdater
from artwork_pipeline.services.artwork_lock import ArtworkLockRegistry
from artwork_pipeline.services.derivative_generator import DerivativeGenerator
from artwork_pipeline.services.identity_resolver import IdentityResolver
from artwork_pipeline.services.ribbon_compositor import RibbonCompositor
from artwork_pipeline.stores.clients import create_dynamodb_resource, create_s3_client
from artwork_pipeline.stores.documents import DocumentStore, DynamoDocumentStore
from artwork_pipeline.stores.storage import S3StorageGateway, StorageGateway

logger = logging.getLogger(__name__)


class PipelineApplication:
    """Holds the wired components for one process.

    Components keep no per-invocation state, so one instance serves any
    number of independent invocations.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        storage: StorageGateway | None = None,
        documents: DocumentStore | None = None,
    ) -> None:
        self.config = config
        configure_tracing(enabled=config.trace_enabled, max_chars=config.trace_max_chars)

        self.storage = storage or S3StorageGateway(create_s3_client(config))
        self.documents = documents or DynamoDocumentStore(create_dynamodb_resource(config))

        self.identity_dao = IdentityDAO(self.documents, config.identity_table)
        self.artwork_dao = ArtworkDAO(self.documents, config.artwork_table)

        self.identity_resolver = IdentityResolver(self.identity_dao)
        self.generator = DerivativeGenerator()
        self.artwork_locks = ArtworkLockRegistry()
        self.index_updater = ArtworkIndexUpdater(
            self.artwork_dao,
            self.artwork_locks,
            max_attempts=config.removal_max_attempts,
        )

        self.creation = CreationPipeline(
            self.storage,
            self.generator,
            self.identity_resolver,
            self.index_updater,
            config.size_targets(),
        )
        self.removal = RemovalPipeline(
            self.storage,
            self.identity_resolver,
            self.index_updater,
            config.derivative_buckets,
        )
        self.ribbon = RibbonCompositor(
            self.storage,
            bucket=config.public_pages_bucket,
            tile_size=config.ribbon_tile_size,
            tiles_per_row=config.ribbon_tiles_per_row,
            thumbs_dir=config.ribbon_thumbs_dir,
            object_name=config.ribbon_object_name,
            fetch_concurrency=config.ribbon_fetch_concurrency,
        )
        self.dispatcher = EventDispatcher(
            self.creation,
            self.removal,
            self.ribbon,
            derivative_buckets=config.derivative_buckets,
            timeout_seconds=config.invocation_timeout_seconds,
        )

    async def handle(
        self,
        notification: Notification,
        *,
        timeout_seconds: float | None = None,
    ) -> InvocationResult:
        return await self.dispatcher.dispatch(notification, timeout_seconds=timeout_seconds)

    async def handle_payload(
        self,
        payload: Any,
        *,
        timeout_seconds: float | None = None,
    ) -> list[InvocationResult]:
        """Parse a raw payload and dispatch each notification in order.

        ``timeout_seconds`` bounds the whole payload: each notification gets
        whatever is left of it, and notifications reached after it has run
        out are reported as timed out without being started.
        """
        notifications = parse_notification(payload)
        loop = asyncio.get_running_loop()
        deadline = None if timeout_seconds is None else loop.time() + timeout_seconds

        results = []
        for notification in notifications:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            results.append(await self.handle(notification, timeout_seconds=remaining))
        return results
