"""Document store boundary.

Two list operations are supported on stored items: appending values and
removing the element at a position. Positional removal can carry an
``expected`` guard so the write only lands if the element still has the
value the caller matched on (compare-and-swap).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from artwork_pipeline.errors import TransientInfraError

logger = logging.getLogger(__name__)


class ConditionCheckFailed(Exception):
    """Raised when an update's guard condition does not hold.

    Either the item does not exist or a positional guard no longer
    matches. DAOs translate this into domain errors.
    """

    pass


@dataclass(frozen=True)
class AppendToList:
    """Append ``values`` to the list attribute ``field`` (created if missing)."""

    field: str
    values: list[dict[str, Any]]


@dataclass(frozen=True)
class RemoveAtIndex:
    """Remove ``field[index]``.

    When ``expected`` is given as ``(attribute, value)`` the removal only
    happens if ``field[index].attribute == value``.
    """

    field: str
    index: int
    expected: tuple[str, Any] | None = None


Operation = AppendToList | RemoveAtIndex


class DocumentStore(Protocol):
    async def get_item(
        self,
        table: str,
        key: dict[str, Any],
        projected_fields: list[str] | None = None,
    ) -> dict[str, Any] | None: ...

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        operation: Operation,
        *,
        require_exists: bool = True,
    ) -> None: ...


def build_update_params(
    key: dict[str, Any],
    operation: Operation,
    *,
    require_exists: bool = True,
) -> dict[str, Any]:
    """Translate an operation into DynamoDB ``update_item`` parameters."""
    names: dict[str, str] = {"#f": operation.field}
    values: dict[str, Any] = {}
    conditions: list[str] = []

    if require_exists:
        first_key = next(iter(key))
        names["#k"] = first_key
        conditions.append("attribute_exists(#k)")

    if isinstance(operation, AppendToList):
        expression = "SET #f = list_append(if_not_exists(#f, :empty), :vals)"
        values[":empty"] = []
        values[":vals"] = list(operation.values)
    elif isinstance(operation, RemoveAtIndex):
        if operation.index < 0:
            raise ValueError(f"index must be >= 0, got {operation.index}")
        expression = f"REMOVE #f[{operation.index}]"
        if operation.expected is not None:
            attribute, expected_value = operation.expected
            names["#e"] = attribute
            values[":expected"] = expected_value
            conditions.append(f"#f[{operation.index}].#e = :expected")
    else:
        raise TypeError(f"Unsupported operation: {operation!r}")

    params: dict[str, Any] = {
        "Key": key,
        "UpdateExpression": expression,
        "ExpressionAttributeNames": names,
    }
    if values:
        params["ExpressionAttributeValues"] = values
    if conditions:
        params["ConditionExpression"] = " AND ".join(conditions)
    return params


class DynamoDocumentStore:
    """DocumentStore backed by a boto3 DynamoDB service resource."""

    def __init__(self, dynamodb_resource: Any) -> None:
        self._dynamodb = dynamodb_resource
        self._tables: dict[str, Any] = {}

    def _table(self, name: str) -> Any:
        table = self._tables.get(name)
        if table is None:
            table = self._dynamodb.Table(name)
            self._tables[name] = table
        return table

    async def get_item(
        self,
        table: str,
        key: dict[str, Any],
        projected_fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {"Key": key, "ConsistentRead": True}
        if projected_fields:
            names = {f"#p{i}": name for i, name in enumerate(projected_fields)}
            params["ProjectionExpression"] = ", ".join(names)
            params["ExpressionAttributeNames"] = names
        try:
            response = await asyncio.to_thread(self._table(table).get_item, **params)
        except (ClientError, BotoCoreError) as e:
            logger.error("Error getting item %s from %s: %s", key, table, e)
            raise TransientInfraError(
                f"Unable to read {table} item: {e}", table=table, key=str(key)
            ) from e
        # An empty response and a response without "Item" both mean absent.
        return response.get("Item") or None

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        operation: Operation,
        *,
        require_exists: bool = True,
    ) -> None:
        params = build_update_params(key, operation, require_exists=require_exists)
        try:
            await asyncio.to_thread(self._table(table).update_item, **params)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise ConditionCheckFailed(str(e)) from e
            logger.error("Error updating item %s in %s: %s", key, table, e)
            raise TransientInfraError(
                f"Unable to update {table} item: {e}", table=table, key=str(key)
            ) from e
        except BotoCoreError as e:
            raise TransientInfraError(
                f"Unable to update {table} item: {e}", table=table, key=str(key)
            ) from e
