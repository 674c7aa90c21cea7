"""
Binary object storage for uploaded images.

Two interchangeable backends share the `ObjectStore` contract:
- `LocalObjectStore` writes into a directory that `main.py` serves at `/uploads`
- `S3ObjectStore` talks to S3 (or an S3-compatible endpoint) through boto3

`resolve()` never does I/O; it only builds the public URL for a key.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlsplit

import aiofiles
import aiofiles.os
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ObjectStoreError
from .settings import S3Settings, Settings

LOCAL_URL_PREFIX = "/uploads"

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Store `data` under `key` and return its public URL."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the object stored under `key`."""

    @abstractmethod
    def resolve(self, key: str) -> str:
        """Public URL for `key`."""

    async def close(self) -> None:
        return None


def _quote_key(key: str) -> str:
    return quote(key, safe="/")


class LocalObjectStore(ObjectStore):
    def __init__(self, root: str | Path, *, public_base_url: str = "") -> None:
        self.root = Path(root).resolve()
        self.public_base_url = (public_base_url or "").strip().rstrip("/")

    def _path_for(self, key: str) -> Path:
        if not key:
            raise ObjectStoreError("Object key is empty.")
        path = (self.root / key).resolve()
        if path == self.root or self.root not in path.parents:
            raise ObjectStoreError(f"Object key escapes upload directory: {key!r}")
        return path

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        path = self._path_for(key)
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as fh:
                await fh.write(data)
        except OSError as exc:
            raise ObjectStoreError(f"Could not write {key}: {exc.strerror or exc}") from exc
        return self.resolve(key)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await aiofiles.os.remove(path)
        except OSError as exc:
            raise ObjectStoreError(f"Could not delete {key}: {exc.strerror or exc}") from exc

    def resolve(self, key: str) -> str:
        return f"{self.public_base_url}{LOCAL_URL_PREFIX}/{_quote_key(key)}"


class S3ObjectStore(ObjectStore):
    """
    boto3 is synchronous, so each call runs in a worker thread to keep the
    event loop free for other requests.
    """

    def __init__(self, settings: S3Settings, *, client: Any = None) -> None:
        if not settings.bucket:
            raise ObjectStoreError("S3 bucket name is empty.")
        self.bucket = settings.bucket
        self.region = settings.region
        self.endpoint_url = settings.endpoint_url.rstrip("/")
        self.public_base_url = settings.public_base_url.rstrip("/")
        self._client = client if client is not None else self._build_client(settings)

    @staticmethod
    def _build_client(settings: S3Settings) -> Any:
        config = Config(
            connect_timeout=settings.connect_timeout_s,
            read_timeout=settings.read_timeout_s,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        kwargs: dict[str, Any] = {"region_name": settings.region, "config": config}
        if settings.endpoint_url:
            kwargs["endpoint_url"] = settings.endpoint_url
        # Missing credentials fall through to boto3's default chain (env, profile, IAM role).
        if settings.access_key_id and settings.secret_access_key:
            kwargs["aws_access_key_id"] = settings.access_key_id
            kwargs["aws_secret_access_key"] = settings.secret_access_key
        return boto3.client("s3", **kwargs)

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        if not key:
            raise ObjectStoreError("Object key is empty.")
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        try:
            await asyncio.to_thread(self._client.put_object, **params)
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"S3 put_object failed for {key}: {exc}") from exc
        return self.resolve(key)

    async def delete(self, key: str) -> None:
        if not key:
            raise ObjectStoreError("Object key is empty.")
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"S3 delete_object failed for {key}: {exc}") from exc

    def resolve(self, key: str) -> str:
        quoted = _quote_key(key)
        if self.public_base_url:
            return f"{self.public_base_url}/{quoted}"
        if self.endpoint_url:
            parts = urlsplit(self.endpoint_url)
            return f"{parts.scheme or 'https'}://{self.bucket}.{parts.netloc}/{quoted}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quoted}"

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            await asyncio.to_thread(close)


def create_object_store(settings: Settings) -> ObjectStore:
    """
    Build the backend named by `settings.storage_backend`.
    """
    if settings.storage_backend == "s3":
        logger.info("object_store backend=s3 bucket=%s region=%s", settings.s3.bucket, settings.s3.region)
        return S3ObjectStore(settings.s3)

    logger.info("object_store backend=local root=%s", settings.upload_dir)
    return LocalObjectStore(settings.upload_dir, public_base_url=settings.public_base_url)
