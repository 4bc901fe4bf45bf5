"""Object storage gateway.

The pipeline only ever talks to storage through ``StorageGateway`` so the
boto3-backed implementation can be swapped for the in-memory one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from artwork_pipeline.errors import ObjectNotFound, TransientInfraError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class StorageGateway(Protocol):
    async def get(self, bucket: str, key: str) -> bytes: ...

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        *,
        acl: str | None = None,
    ) -> None: ...

    async def delete(self, bucket: str, key: str) -> None: ...

    async def list(self, bucket: str, prefix: str) -> list[str]: ...


def _is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in _NOT_FOUND_CODES


class S3StorageGateway:
    """StorageGateway backed by a boto3 S3 client.

    Boto3 calls block, so each one runs in a worker thread.
    """

    def __init__(self, s3_client: "S3Client") -> None:
        self._s3 = s3_client

    async def get(self, bucket: str, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(self._s3.get_object, Bucket=bucket, Key=key)
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFound(
                    f"Object {bucket}/{key} not found", bucket=bucket, key=key
                ) from e
            raise TransientInfraError(
                f"Unable to get {bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e
        except BotoCoreError as e:
            raise TransientInfraError(
                f"Unable to get {bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        *,
        acl: str | None = None,
    ) -> None:
        params = {"Bucket": bucket, "Key": key, "Body": data, "ContentType": content_type}
        if acl:
            params["ACL"] = acl
        try:
            await asyncio.to_thread(self._s3.put_object, **params)
        except (ClientError, BotoCoreError) as e:
            raise TransientInfraError(
                f"Unable to put {bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e
        logger.info("Put object (bucket=%s key=%s bytes=%d)", bucket, key, len(data))

    async def delete(self, bucket: str, key: str) -> None:
        # S3 deletes are idempotent, so absence is detected up front.
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFound(
                    f"Object {bucket}/{key} not found", bucket=bucket, key=key
                ) from e
            raise TransientInfraError(
                f"Unable to delete {bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e
        except BotoCoreError as e:
            raise TransientInfraError(
                f"Unable to delete {bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e

        try:
            await asyncio.to_thread(self._s3.delete_object, Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise TransientInfraError(
                f"Unable to delete {bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e
        logger.info("Deleted object (bucket=%s key=%s)", bucket, key)

    async def list(self, bucket: str, prefix: str) -> list[str]:
        keys: list[str] = []
        params = {"Bucket": bucket, "Prefix": prefix}
        try:
            while True:
                response = await asyncio.to_thread(self._s3.list_objects_v2, **params)
                keys.extend(obj["Key"] for obj in response.get("Contents", []))
                if not response.get("IsTruncated"):
                    break
                params["ContinuationToken"] = response["NextContinuationToken"]
        except (ClientError, BotoCoreError) as e:
            raise TransientInfraError(
                f"Unable to list {bucket}/{prefix}: {e}", bucket=bucket, prefix=prefix
            ) from e
        return keys
