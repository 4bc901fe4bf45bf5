"""Unit tests for the document store boundary."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from artwork_pipeline.errors import TransientInfraError
from artwork_pipeline.stores.documents import (
    AppendToList,
    ConditionCheckFailed,
    DynamoDocumentStore,
    RemoveAtIndex,
    build_update_params,
)
from artwork_pipeline.stores.memory import InMemoryDocumentStore

KEY = {"uref": "ref-A", "uuid": "art1"}


def _client_error(code: str, operation: str = "UpdateItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestBuildUpdateParams:
    def test_append(self):
        params = build_update_params(KEY, AppendToList(field="images", values=[{"key": "k"}]))

        assert params["Key"] == KEY
        assert params["UpdateExpression"] == "SET #f = list_append(if_not_exists(#f, :empty), :vals)"
        assert params["ExpressionAttributeNames"] == {"#f": "images", "#k": "uref"}
        assert params["ExpressionAttributeValues"] == {":empty": [], ":vals": [{"key": "k"}]}
        assert params["ConditionExpression"] == "attribute_exists(#k)"

    def test_append_without_existence_check(self):
        params = build_update_params(
            KEY, AppendToList(field="images", values=[]), require_exists=False
        )
        assert "ConditionExpression" not in params

    def test_guarded_remove(self):
        params = build_update_params(
            KEY, RemoveAtIndex(field="images", index=3, expected=("key", "a/b/c/d.jpg"))
        )

        assert params["UpdateExpression"] == "REMOVE #f[3]"
        assert params["ExpressionAttributeNames"] == {"#f": "images", "#k": "uref", "#e": "key"}
        assert params["ExpressionAttributeValues"] == {":expected": "a/b/c/d.jpg"}
        assert params["ConditionExpression"] == "attribute_exists(#k) AND #f[3].#e = :expected"

    def test_unguarded_remove_has_no_values(self):
        params = build_update_params(KEY, RemoveAtIndex(field="images", index=0))
        assert "ExpressionAttributeValues" not in params

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            build_update_params(KEY, RemoveAtIndex(field="images", index=-1))


class TestDynamoDocumentStore:
    @pytest.fixture
    def table(self):
        return MagicMock()

    @pytest.fixture
    def store(self, table):
        resource = MagicMock()
        resource.Table.return_value = table
        return DynamoDocumentStore(resource)

    async def test_get_item_with_projection(self, store, table):
        table.get_item.return_value = {"Item": {"uref": "ref-A"}}

        item = await store.get_item("openid", {"sub": "userA"}, ["uref"])

        assert item == {"uref": "ref-A"}
        table.get_item.assert_called_once_with(
            Key={"sub": "userA"},
            ConsistentRead=True,
            ProjectionExpression="#p0",
            ExpressionAttributeNames={"#p0": "uref"},
        )

    @pytest.mark.parametrize("response", [{}, {"Item": {}}])
    async def test_get_item_absent(self, store, table, response):
        table.get_item.return_value = response
        assert await store.get_item("openid", {"sub": "x"}) is None

    async def test_get_item_failure_is_transient(self, store, table):
        table.get_item.side_effect = _client_error("ProvisionedThroughputExceededException", "GetItem")
        with pytest.raises(TransientInfraError):
            await store.get_item("openid", {"sub": "x"})

    async def test_update_passes_built_params(self, store, table):
        operation = AppendToList(field="images", values=[{"key": "k"}])

        await store.update_item("artwork", KEY, operation)

        table.update_item.assert_called_once_with(**build_update_params(KEY, operation))

    async def test_condition_failure_mapped(self, store, table):
        table.update_item.side_effect = _client_error("ConditionalCheckFailedException")
        with pytest.raises(ConditionCheckFailed):
            await store.update_item("artwork", KEY, RemoveAtIndex(field="images", index=0))

    async def test_other_client_error_is_transient(self, store, table):
        table.update_item.side_effect = _client_error("InternalServerError")
        with pytest.raises(TransientInfraError):
            await store.update_item("artwork", KEY, RemoveAtIndex(field="images", index=0))

    async def test_connection_error_is_transient(self, store, table):
        table.update_item.side_effect = EndpointConnectionError(endpoint_url="http://localhost")
        with pytest.raises(TransientInfraError):
            await store.update_item("artwork", KEY, RemoveAtIndex(field="images", index=0))

    async def test_table_handles_cached(self, store):
        await store.get_item("openid", {"sub": "a"})
        await store.get_item("openid", {"sub": "b"})
        assert store._dynamodb.Table.call_count == 1


class TestInMemoryDocumentStore:
    async def test_guard_mismatch(self):
        store = InMemoryDocumentStore()
        store.put_item("artwork", ["uref", "uuid"], {**KEY, "images": [{"key": "a"}, {"key": "b"}]})

        with pytest.raises(ConditionCheckFailed):
            await store.update_item(
                "artwork", KEY, RemoveAtIndex(field="images", index=0, expected=("key", "b"))
            )

        assert store.item("artwork", KEY)["images"] == [{"key": "a"}, {"key": "b"}]
        assert store.update_count == 0

    async def test_guard_index_out_of_range(self):
        store = InMemoryDocumentStore()
        store.put_item("artwork", ["uref", "uuid"], {**KEY, "images": []})
        with pytest.raises(ConditionCheckFailed):
            await store.update_item(
                "artwork", KEY, RemoveAtIndex(field="images", index=0, expected=("key", "a"))
            )

    async def test_missing_item(self):
        with pytest.raises(ConditionCheckFailed):
            await InMemoryDocumentStore().update_item(
                "artwork", KEY, AppendToList(field="images", values=[])
            )

    async def test_stored_items_are_copies(self):
        store = InMemoryDocumentStore()
        item = {**KEY, "images": [{"key": "a"}]}
        store.put_item("artwork", ["uref", "uuid"], item)
        item["images"].append({"key": "b"})

        fetched = await store.get_item("artwork", KEY)
        fetched["images"].clear()

        assert store.item("artwork", KEY)["images"] == [{"key": "a"}]
