"""
Object Store Module
===================

Provides abstract and concrete implementations for storing relocated
product images. Objects are addressed by a slash-separated key such as
``megabass/vision-110/01.webp`` and served from a public base URL.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from lure_catalog.core.errors import ConfigError

logger = logging.getLogger(__name__)

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


class ObjectStore(ABC):
    """
    Abstract base class for object storage.

    Writing to an existing key overwrites it, so re-running an item
    produces the same public URLs.
    """

    @abstractmethod
    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> str:
        """
        Store an object.

        Args:
            key: Object key
            data: Object bytes
            content_type: MIME type of the object
            cache_control: Cache directive served with the object

        Returns:
            Public URL of the stored object
        """
        pass


class LocalObjectStore(ObjectStore):
    """
    Local filesystem object store.

    Directory structure mirrors the key: {base_path}/{source}/{slug}/{NN}.webp
    """

    def __init__(self, base_path: str | Path, public_base_url: str | None = None) -> None:
        """
        Initialize local object store.

        Args:
            base_path: Base directory for stored objects
            public_base_url: URL prefix the directory is served from.
                Defaults to a file:// URL of base_path.
        """
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or self.base_path.as_uri()).rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path):
            raise ValueError(f"Object key escapes store root: {key}")
        return path

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> str:
        """Write the object to disk and return its public URL."""
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"Stored {len(data)} bytes at {path} ({content_type})")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"


class S3ObjectStore(ObjectStore):
    """S3-compatible object store (AWS S3, Cloudflare R2, MinIO...)."""

    def __init__(
        self,
        bucket: str,
        public_base_url: str,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str = "auto",
        client=None,
    ) -> None:
        """
        Initialize S3 object store.

        Args:
            bucket: Bucket name
            public_base_url: URL prefix objects are publicly served from
            endpoint_url: Custom endpoint (required for R2 and MinIO)
            access_key_id: Access key
            secret_access_key: Secret key
            region: Region name ("auto" for R2)
            client: Pre-built boto3 S3 client (for tests)
        """
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        if client is None:
            import boto3

            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=region,
            )
        self.client = client

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> str:
        """Upload the object and return its public URL."""
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            CacheControl=cache_control,
        )
        logger.debug(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"


def create_object_store_from_env() -> ObjectStore:
    """
    Build an object store from environment variables.

    - OBJECT_STORE_TYPE: "local" (default) or "s3"
    - local: OBJECT_STORE_LOCAL_PATH, OBJECT_STORE_PUBLIC_URL
    - s3: S3_BUCKET, OBJECT_STORE_PUBLIC_URL, S3_ENDPOINT_URL,
      S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY, S3_REGION

    Raises:
        ConfigError: if the store type is unknown or S3 settings are missing
    """
    store_type = os.environ.get("OBJECT_STORE_TYPE", "local").lower()
    public_url = os.environ.get("OBJECT_STORE_PUBLIC_URL")

    if store_type == "s3":
        bucket = os.environ.get("S3_BUCKET")
        if not bucket or not public_url:
            raise ConfigError("S3 object store requires S3_BUCKET and OBJECT_STORE_PUBLIC_URL")
        return S3ObjectStore(
            bucket=bucket,
            public_base_url=public_url,
            endpoint_url=os.environ.get("S3_ENDPOINT_URL"),
            access_key_id=os.environ.get("S3_ACCESS_KEY_ID"),
            secret_access_key=os.environ.get("S3_SECRET_ACCESS_KEY"),
            region=os.environ.get("S3_REGION", "auto"),
        )

    if store_type == "local":
        base_path = os.environ.get(
            "OBJECT_STORE_LOCAL_PATH", str(Path.home() / ".lure_catalog" / "images")
        )
        return LocalObjectStore(base_path, public_url)

    raise ConfigError(f"Unknown OBJECT_STORE_TYPE '{store_type}' (expected local or s3)")


# Global object store instance
_default_object_store: ObjectStore | None = None


def get_default_object_store() -> ObjectStore:
    """Get the object store configured by the environment."""
    global _default_object_store
    if _default_object_store is None:
        _default_object_store = create_object_store_from_env()
    return _default_object_store


def reset_default_object_store() -> None:
    """Reset the default object store (useful for testing)."""
    global _default_object_store
    _default_object_store = None
