"""Dict-based storage and document store for local runs and testing."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from artwork_pipeline.errors import ObjectNotFound
from artwork_pipeline.stores.documents import (
    AppendToList,
    ConditionCheckFailed,
    Operation,
    RemoveAtIndex,
)


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    acl: str | None = None


class InMemoryStorageGateway:
    """In-memory StorageGateway."""

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], StoredObject] = {}

    def seed(self, bucket: str, key: str, data: bytes, content_type: str = "image/jpeg") -> None:
        """Preload an object without going through ``put``."""
        self._objects[(bucket, key)] = StoredObject(data=data, content_type=content_type)

    def object(self, bucket: str, key: str) -> StoredObject | None:
        """Return the stored object, if any."""
        return self._objects.get((bucket, key))

    def keys(self, bucket: str) -> list[str]:
        return sorted(k for b, k in self._objects if b == bucket)

    async def get(self, bucket: str, key: str) -> bytes:
        stored = self._objects.get((bucket, key))
        if stored is None:
            raise ObjectNotFound(f"Object {bucket}/{key} not found", bucket=bucket, key=key)
        return stored.data

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        *,
        acl: str | None = None,
    ) -> None:
        self._objects[(bucket, key)] = StoredObject(data=data, content_type=content_type, acl=acl)

    async def delete(self, bucket: str, key: str) -> None:
        if self._objects.pop((bucket, key), None) is None:
            raise ObjectNotFound(f"Object {bucket}/{key} not found", bucket=bucket, key=key)

    async def list(self, bucket: str, prefix: str) -> list[str]:
        return [k for k in self.keys(bucket) if k.startswith(prefix)]


def _item_id(key: dict[str, Any]) -> tuple[tuple[str, Any], ...]:
    return tuple(sorted(key.items()))


class InMemoryDocumentStore:
    """In-memory DocumentStore.

    Updates contain no awaits, so each one is atomic with respect to other
    coroutines on the same event loop.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[tuple[tuple[str, Any], ...], dict[str, Any]]] = {}
        self.update_count = 0

    def put_item(self, table: str, key_fields: list[str], item: dict[str, Any]) -> None:
        """Store a full item; ``key_fields`` name its primary key attributes."""
        key = {name: item[name] for name in key_fields}
        self._tables.setdefault(table, {})[_item_id(key)] = copy.deepcopy(item)

    def item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Return a copy of the stored item, if any."""
        stored = self._tables.get(table, {}).get(_item_id(key))
        return copy.deepcopy(stored) if stored is not None else None

    async def get_item(
        self,
        table: str,
        key: dict[str, Any],
        projected_fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        stored = self.item(table, key)
        if stored is None:
            return None
        if projected_fields:
            stored = {k: v for k, v in stored.items() if k in projected_fields}
        return stored or None

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        operation: Operation,
        *,
        require_exists: bool = True,
    ) -> None:
        rows = self._tables.setdefault(table, {})
        item = rows.get(_item_id(key))
        if item is None:
            if require_exists:
                raise ConditionCheckFailed(f"No item {key} in {table}")
            item = dict(key)

        values = list(item.get(operation.field, []))
        if isinstance(operation, AppendToList):
            values.extend(copy.deepcopy(operation.values))
        elif isinstance(operation, RemoveAtIndex):
            if operation.expected is not None:
                attribute, expected_value = operation.expected
                if operation.index >= len(values) or values[operation.index].get(attribute) != expected_value:
                    raise ConditionCheckFailed(
                        f"{operation.field}[{operation.index}].{attribute} != {expected_value!r}"
                    )
            if operation.index < len(values):
                del values[operation.index]
        else:
            raise TypeError(f"Unsupported operation: {operation!r}")

        item[operation.field] = values
        rows[_item_id(key)] = item
        self.update_count += 1
