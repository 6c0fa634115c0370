"""Amazon S3 storage backend.

Thin pass-through to the boto3 S3 client. boto3 is synchronous, so every
call is pushed onto the default executor; request handlers suspend on the
round-trip instead of blocking the event loop.

Object URL formats
------------------
::

    # public_base_url configured (CDN, website endpoint, ...)
    {public_base_url}/{prefix}{key}

    # endpoint_url configured (MinIO, LocalStack, ...), path-style
    {endpoint_url}/{bucket}/{prefix}{key}

    # plain AWS, virtual-hosted style
    https://{bucket}.s3.{region}.amazonaws.com/{prefix}{key}
"""
import asyncio
import logging
from typing import Callable, List, Optional, TypeVar
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from modelhost.config import AppSettings
from modelhost.errors import StorageError

from .base import StorageClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_REGION = "us-east-1"


class S3StorageClient(StorageClient):
    """StorageClient backed by a single S3 bucket.

    Args:
        bucket:                Bucket name. Required.
        region_name:           AWS region. Defaults to ``us-east-1``.
        prefix:                Optional key prefix (e.g. ``"models/"``).
        endpoint_url:          Custom S3-compatible endpoint.
        public_base_url:       Base for public object URLs, overriding the
                               AWS-derived one.
        aws_access_key_id:     AWS access key. ``None`` → default credential chain.
        aws_secret_access_key: AWS secret access key.
        aws_session_token:     Optional temporary-credential session token.
        client:                Pre-built boto3 client (tests).
    """

    def __init__(
        self,
        bucket: str,
        region_name: Optional[str] = None,
        prefix: str = "",
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
        client: Optional[object] = None,
    ) -> None:
        self._bucket   = bucket
        self._region   = region_name or DEFAULT_REGION
        self._prefix   = prefix
        self._endpoint = endpoint_url.rstrip("/") if endpoint_url else None
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None

        if client is None:
            kwargs: dict = {"region_name": self._region}
            if aws_access_key_id and aws_secret_access_key:
                kwargs["aws_access_key_id"]     = aws_access_key_id
                kwargs["aws_secret_access_key"] = aws_secret_access_key
            if aws_session_token:
                kwargs["aws_session_token"] = aws_session_token
            if self._endpoint:
                kwargs["endpoint_url"] = self._endpoint
            client = boto3.client("s3", **kwargs)
        self._client = client

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "S3StorageClient":
        """Build a client from validated application settings."""
        storage = settings.storage
        aws = settings.secrets.aws
        return cls(
            bucket=storage.bucket,
            region_name=storage.region,
            prefix=storage.prefix,
            endpoint_url=storage.endpoint_url,
            public_base_url=storage.public_base_url,
            aws_access_key_id=aws.access_key_id,
            aws_secret_access_key=aws.secret_access_key,
            aws_session_token=aws.session_token,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _logical_key(self, full_key: str) -> str:
        if self._prefix and full_key.startswith(self._prefix):
            return full_key[len(self._prefix):]
        return full_key

    async def _run(self, operation: str, key: str, fn: Callable[[], T]) -> T:
        """Run a blocking boto3 call in the executor, translating failures."""
        try:
            return await asyncio.get_event_loop().run_in_executor(None, fn)
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 %s error (bucket=%s key=%s): %s", operation, self._bucket, key, exc)
            raise StorageError(operation, key, exc) from exc

    # -----------------------------------------------------------------------
    # StorageClient implementation
    # -----------------------------------------------------------------------

    def object_url(self, key: str) -> str:
        path = quote(self._full_key(key))
        if self._public_base_url:
            return f"{self._public_base_url}/{path}"
        if self._endpoint:
            return f"{self._endpoint}/{self._bucket}/{path}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{path}"

    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        full_key = self._full_key(key)
        await self._run(
            "put",
            key,
            lambda: self._client.put_object(
                Bucket=self._bucket,
                Key=full_key,
                Body=body,
                ContentType=content_type,
            ),
        )
        logger.info("Stored s3://%s/%s (%d bytes)", self._bucket, full_key, len(body))
        return self.object_url(key)

    async def list_objects(self) -> List[str]:
        def _list_all() -> List[str]:
            kwargs = {"Bucket": self._bucket}
            if self._prefix:
                kwargs["Prefix"] = self._prefix
            keys: List[str] = []
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**kwargs):
                # Empty buckets omit "Contents" entirely
                for item in page.get("Contents", []):
                    keys.append(item["Key"])
            return keys

        full_keys = await self._run("list", "", _list_all)
        return [self._logical_key(k) for k in full_keys]

    async def delete_object(self, key: str) -> None:
        full_key = self._full_key(key)
        await self._run(
            "delete",
            key,
            lambda: self._client.delete_object(Bucket=self._bucket, Key=full_key),
        )
        logger.info("Deleted s3://%s/%s", self._bucket, full_key)

    async def generate_signed_url(self, key: str, expires_in: int) -> str:
        full_key = self._full_key(key)
        return await self._run(
            "sign",
            key,
            lambda: self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": full_key},
                ExpiresIn=expires_in,
            ),
        )
