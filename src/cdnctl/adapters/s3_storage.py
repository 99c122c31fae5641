"""S3-compatible storage backend (boto3).

boto3 is synchronous; every call runs in the loop's default executor so a
stage can keep several requests in flight. The client is thread-safe and
its connection pool is sized to the stage concurrency.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from cdnctl.core.config import CdnCredentials
from cdnctl.core.domain.models import ObjectMetadata
from cdnctl.core.errors import ObjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def build_s3_client(credentials: CdnCredentials, *, max_pool_connections: int = 16) -> Any:
    config = Config(
        region_name="auto",
        retries={
            "max_attempts": 3,
            "mode": "adaptive",
        },
        max_pool_connections=max(10, max_pool_connections),
    )
    return boto3.client(
        "s3",
        endpoint_url=credentials.endpoint,
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        config=config,
    )


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "ClientError"))


class S3ObjectStorage:
    """`ObjectStorage` for one bucket of an S3-compatible endpoint (R2, MinIO, AWS)."""

    def __init__(self, client: Any, bucket_name: str) -> None:
        self._client = client
        self.bucket_name = bucket_name

    @classmethod
    def from_credentials(cls, credentials: CdnCredentials, *, max_concurrency: int = 16) -> "S3ObjectStorage":
        client = build_s3_client(credentials, max_pool_connections=max_concurrency)
        logger.debug("S3 client ready for bucket %s at %s", credentials.bucket_name, credentials.endpoint)
        return cls(client, credentials.bucket_name)

    async def _call(self, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    async def get_object_metadata(self, key: str) -> ObjectMetadata:
        try:
            head = await self._call(
                lambda: self._client.head_object(Bucket=self.bucket_name, Key=key)
            )
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(key) from exc
            raise StorageError(str(exc), code=code) from exc
        except BotoCoreError as exc:
            raise StorageError(str(exc), code="network") from exc

        return ObjectMetadata(
            size_bytes=head.get("ContentLength"),
            last_modified=head.get("LastModified"),
            content_type=head.get("ContentType"),
        )

    async def delete_object(self, key: str) -> None:
        """Delete `key`, raising `ObjectNotFoundError` when it is already gone.

        S3 and R2 answer `DeleteObject` with 204 for missing keys too, so the
        key is checked with `HeadObject` first.
        """

        def delete() -> None:
            self._client.head_object(Bucket=self.bucket_name, Key=key)
            self._client.delete_object(Bucket=self.bucket_name, Key=key)

        try:
            await self._call(delete)
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(key) from exc
            raise StorageError(str(exc), code=code) from exc
        except BotoCoreError as exc:
            raise StorageError(str(exc), code="network") from exc

    async def put_object(self, key: str, path: Path, content_type: str | None = None) -> None:
        def upload() -> None:
            extra: dict[str, str] = {}
            if content_type:
                extra["ContentType"] = content_type
            with path.open("rb") as body:
                self._client.put_object(Bucket=self.bucket_name, Key=key, Body=body, **extra)

        try:
            await self._call(upload)
        except ClientError as exc:
            raise StorageError(str(exc), code=_error_code(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError(str(exc), code="network") from exc

    async def check_bucket(self) -> None:
        try:
            await self._call(lambda: self._client.head_bucket(Bucket=self.bucket_name))
        except ClientError as exc:
            raise StorageError(str(exc), code=_error_code(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError(str(exc), code="network") from exc
