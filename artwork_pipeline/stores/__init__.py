"""Object storage and document store boundaries."""

from .documents import (
    AppendToList,
    ConditionCheckFailed,
    DocumentStore,
    DynamoDocumentStore,
    RemoveAtIndex,
)
from .memory import InMemoryDocumentStore, InMemoryStorageGateway
from .storage import S3StorageGateway, StorageGateway

__all__ = [
    "AppendToList",
    "ConditionCheckFailed",
    "DocumentStore",
    "DynamoDocumentStore",
    "InMemoryDocumentStore",
    "InMemoryStorageGateway",
    "RemoveAtIndex",
    "S3StorageGateway",
    "StorageGateway",
]
