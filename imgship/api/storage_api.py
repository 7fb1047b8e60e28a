from __future__ import annotations

import asyncio
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Iterator, List, Optional

import aioboto3
import aiofiles
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import SecretStr

from imgship.domain.types.s3 import S3Object
from imgship.domain.types.upload import UploadDescriptor
from imgship.exceptions import StorageError
from imgship.io.credentials import DEFAULT_REGION, StorageCredentials, _is_ssl_url, _normalize_url
from imgship.io.decorators import sync_compatible, sync_compatible_generator
from imgship.io.url import build_object_url

logger = logging.getLogger(__name__)

_SDK_LOGGERS = ("botocore", "aiobotocore", "aioboto3")


# ----------------------------------- dataclasses -------------------------------------------
@dataclass
class StorageConfig:
    """Configuration for StorageApi client."""

    service_name: str = "s3"
    addressing_style: str = "auto"
    max_pool_connections: int = 10
    read_timeout: int = 60
    connect_timeout: int = 10
    max_retries: int = 5
    multipart_threshold: int = 64 * 1024 * 1024  # 64 MiB
    part_size: int = 8 * 1024 * 1024  # 8 MiB

    def to_boto3_config(self, extra: Optional[Dict[str, Any]] = None) -> Config:
        """Convert to boto3 Config object."""
        s3_cfg = {"addressing_style": self.addressing_style}
        if extra and isinstance(extra.get(self.service_name), dict):
            s3_cfg.update(extra[self.service_name])
        return Config(
            signature_version="s3v4",
            s3=s3_cfg,
            retries={"max_attempts": self.max_retries, "mode": "standard"},
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            max_pool_connections=self.max_pool_connections,
        )


@contextmanager
def _storage_errors(action: str, bucket: Optional[str] = None, key: Optional[str] = None):
    """Re-raise SDK failures as :class:`StorageError`."""
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Storage {action} failed for s3://{bucket}/{key or ''}: {e}")
        raise StorageError(f"Storage {action} failed", cause=e, bucket=bucket, key=key) from e


def _secret(value: Optional[SecretStr]) -> Optional[str]:
    return value.get_secret_value() if value is not None else None


@contextmanager
def _quiet_sdk_loggers(level: int = logging.WARNING) -> Iterator[None]:
    loggers = [logging.getLogger(name) for name in _SDK_LOGGERS]
    previous = [lg.level for lg in loggers]
    for lg in loggers:
        lg.setLevel(level)
    try:
        yield
    finally:
        for lg, lvl in zip(loggers, previous):
            lg.setLevel(lvl)


# --------------- Object Operations ---------------------------------------------
class ObjectOperations:
    """Object-related operations."""

    def __init__(self, api: StorageApi):
        self._api = api

    @sync_compatible
    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        acl: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> str:
        """Upload object from bytes. Returns the ETag."""
        client = await self._api._ensure_connected()
        params = {"Bucket": bucket, "Key": key, "Body": body}
        params.update(self._build_put_params(content_type, metadata, acl, cache_control))
        with _storage_errors("put", bucket, key):
            resp = await client.put_object(**params)
        return resp.get("ETag", "")

    @sync_compatible
    async def delete(self, bucket: str, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error on S3."""
        client = await self._api._ensure_connected()
        with _storage_errors("delete", bucket, key):
            await client.delete_object(Bucket=bucket, Key=key)
        logger.info(f"Deleted s3://{bucket}/{key}")

    @sync_compatible
    async def exists(self, bucket: str, key: str) -> bool:
        """Check if object exists."""
        client = await self._api._ensure_connected()
        try:
            await client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if self._is_not_found_error(e):
                return False
            logger.error(f"Storage head failed for s3://{bucket}/{key}: {e}")
            raise StorageError("Storage head failed", cause=e, bucket=bucket, key=key) from e
        except BotoCoreError as e:
            logger.error(f"Storage head failed for s3://{bucket}/{key}: {e}")
            raise StorageError("Storage head failed", cause=e, bucket=bucket, key=key) from e

    @staticmethod
    def _build_put_params(
        content_type: Optional[str],
        metadata: Optional[Dict[str, str]],
        acl: Optional[str],
        cache_control: Optional[str],
    ) -> Dict[str, Any]:
        """Build optional parameters for put_object / create_multipart_upload."""
        params: Dict[str, Any] = {}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata
        if acl:
            params["ACL"] = acl
        if cache_control:
            params["CacheControl"] = cache_control
        return params

    @staticmethod
    def _is_not_found_error(e: ClientError) -> bool:
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        err_code = e.response.get("Error", {}).get("Code")
        return status == 404 or err_code in ("404", "NoSuchKey", "NotFound")


# ----------------------------------------------------------------------------------
# --------------- StorageApi ------------------------------------------------------
# ----------------------------------------------------------------------------------
class StorageApi:
    """
    S3-compatible object storage client built on aioboto3.

    Every public coroutine is wrapped with ``sync_compatible``: called from
    synchronous code it blocks and returns the result, called inside an event
    loop it returns an awaitable.
    """

    def __init__(
        self,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        default_bucket: Optional[str] = None,
        config: Optional[StorageConfig] = None,
        extra_config: Optional[Dict[str, Any]] = None,
        session: Optional[aioboto3.Session] = None,
    ) -> None:
        """
        Args:
            access_key_id: Access key; when omitted the default AWS credential chain is used.
            secret_access_key: Secret key.
            region: Bucket region, ``us-east-1`` by default.
            endpoint_url: Custom S3 endpoint (MinIO, DigitalOcean Spaces, ...).
            default_bucket: Bucket used when a call does not name one.
            config: Client tuning, see :class:`StorageConfig`.
            extra_config: Extra configuration for boto3 Config.
            session: aioboto3 session to open clients from.
        """
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._region = region or DEFAULT_REGION
        self._endpoint_url = _normalize_url(endpoint_url)
        self.default_bucket = default_bucket
        self._raw_config = config or StorageConfig()
        self._config = self._raw_config.to_boto3_config(extra=extra_config)
        self._session = session or aioboto3.Session()
        self._client_cm = None
        self._client = None  # type: ignore
        self._asyncio_lock: Optional[asyncio.Lock] = None

        self.objects = ObjectOperations(self)

    # --------------- Factory Methods ---------------
    @classmethod
    def from_credentials(cls, creds: StorageCredentials, **kwargs) -> StorageApi:
        """Create a client from :class:`StorageCredentials` settings."""
        creds.validate_credentials()
        return cls(
            access_key_id=creds.S3_ACCESS_KEY_ID.get_secret_value(),
            secret_access_key=creds.S3_SECRET_ACCESS_KEY.get_secret_value(),
            region=creds.get_region(),
            endpoint_url=creds.get_endpoint_url(),
            default_bucket=creds.S3_BUCKET,
            **kwargs,
        )

    @classmethod
    def from_descriptor(cls, descriptor: UploadDescriptor, **kwargs) -> StorageApi:
        """Create a client for the bucket and credentials of an upload."""
        return cls(
            access_key_id=_secret(descriptor.access_key_id),
            secret_access_key=_secret(descriptor.secret_access_key),
            region=descriptor.region,
            endpoint_url=descriptor.endpoint_url,
            default_bucket=descriptor.bucket,
            **kwargs,
        )

    # --------------- Properties ---------------
    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._client is not None

    @property
    def region(self) -> str:
        return self._region

    @property
    def endpoint_url(self) -> Optional[str]:
        return self._endpoint_url

    # --------------- Connection Management ---------------
    async def _get_lock(self) -> asyncio.Lock:
        """Get or create the asyncio lock (lazy initialization)."""
        if self._asyncio_lock is None:
            self._asyncio_lock = asyncio.Lock()
        return self._asyncio_lock

    async def _connect(self):
        """Open the underlying S3 client."""
        lock = await self._get_lock()
        async with lock:
            if self._client is not None:
                return self._client
            params: Dict[str, Any] = {
                "service_name": self._raw_config.service_name,
                "region_name": self._region,
                "config": self._config,
            }
            if self._endpoint_url:
                params["endpoint_url"] = self._endpoint_url
                params["use_ssl"] = _is_ssl_url(self._endpoint_url)
            if self._access_key_id is not None:
                params["aws_access_key_id"] = self._access_key_id
                params["aws_secret_access_key"] = self._secret_access_key
            with _quiet_sdk_loggers(), _storage_errors("connect"):
                self._client_cm = self._session.client(**params)
                self._client = await self._client_cm.__aenter__()  # type: ignore
            logger.debug(f"Connected to S3 ({self._endpoint_url or 'aws'}, {self._region})")
        return self._client

    async def _ensure_connected(self):
        if self._client is not None:
            return self._client
        return await self._connect()

    @sync_compatible
    async def close(self) -> None:
        """Close the underlying S3 client."""
        if self._client_cm is not None:
            await self._client_cm.__aexit__(None, None, None)
        self._client = None
        self._client_cm = None

    def __enter__(self) -> StorageApi:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    async def __aenter__(self) -> StorageApi:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _bucket(self, bucket: Optional[str]) -> str:
        bucket = bucket or self.default_bucket
        if not bucket:
            raise ValueError("Bucket name is required (no default bucket configured).")
        return bucket

    # --------------- URLs ---------------
    def object_url(self, key: str, bucket: Optional[str] = None) -> str:
        """Public URL of an object."""
        return build_object_url(self._bucket(bucket), key, self._region, self._endpoint_url)

    # --------------- Listing ---------------
    @sync_compatible_generator
    async def iter_objects(
        self,
        prefix: str = "",
        bucket: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> AsyncGenerator[S3Object, None]:
        """Async generator yielding object summaries under a prefix, page by page."""
        bucket = self._bucket(bucket)
        client = await self._ensure_connected()
        paginator = client.get_paginator("list_objects_v2")
        paginate_params: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if page_size:
            paginate_params["PaginationConfig"] = {"PageSize": page_size}

        with _storage_errors("list", bucket, prefix):
            async for page in paginator.paginate(**paginate_params):
                for obj in page.get("Contents", []):
                    yield S3Object(**obj)

    @sync_compatible
    async def list_objects(
        self,
        prefix: str = "",
        bucket: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> List[S3Object]:
        """
        Thin wrapper around a single S3 ListObjectsV2 call.
        Returns at most ``max_keys`` (1000 by default on S3) objects under ``prefix``.
        """
        bucket = self._bucket(bucket)
        client = await self._ensure_connected()
        params: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if max_keys is not None:
            params["MaxKeys"] = max_keys

        with _storage_errors("list", bucket, prefix):
            resp = await client.list_objects_v2(**params)
        return [S3Object(**obj) for obj in resp.get("Contents") or []]

    # --------------- File helpers (local disk -> S3) ---------------
    @sync_compatible
    async def upload(
        self,
        file_path: str,
        key: str,
        bucket: Optional[str] = None,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        acl: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> str:
        """
        Uploads a local file and returns the object URL.
        Uses single PUT for small files; multipart for large files.
        """
        bucket = self._bucket(bucket)
        key = key.lstrip("/")
        size = os.path.getsize(file_path)
        extra = ObjectOperations._build_put_params(content_type, metadata, acl, cache_control)

        if size < self._raw_config.multipart_threshold:
            async with aiofiles.open(file_path, "rb") as f:
                data = await f.read()
            await self.objects.put(
                bucket=bucket,
                key=key,
                body=data,
                content_type=content_type,
                metadata=metadata,
                acl=acl,
                cache_control=cache_control,
            )
        else:
            await self._upload_multipart(file_path, bucket, key, extra)

        url = self.object_url(key, bucket)
        logger.info(f"Uploaded {file_path} ({size} bytes) to {url}")
        return url

    async def _upload_multipart(
        self, file_path: str, bucket: str, key: str, extra: Dict[str, Any]
    ) -> str:
        client = await self._ensure_connected()
        with _storage_errors("multipart upload", bucket, key):
            resp = await client.create_multipart_upload(Bucket=bucket, Key=key, **extra)
        upload_id = resp["UploadId"]
        parts: List[Dict[str, Any]] = []
        part_number = 1

        try:
            with _storage_errors("multipart upload", bucket, key):
                async with aiofiles.open(file_path, "rb") as f:
                    while chunk := await f.read(self._raw_config.part_size):
                        up = await client.upload_part(
                            Bucket=bucket,
                            Key=key,
                            PartNumber=part_number,
                            UploadId=upload_id,
                            Body=chunk,
                        )
                        parts.append({"PartNumber": part_number, "ETag": up["ETag"]})
                        part_number += 1

                complete = await client.complete_multipart_upload(
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": parts},
                )
            return complete.get("ETag", "")
        except Exception:
            try:
                await client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
            except (ClientError, BotoCoreError) as abort_error:
                logger.warning(f"Could not abort multipart upload {upload_id}: {abort_error}")
            raise

    @sync_compatible
    async def delete(self, key: str, bucket: Optional[str] = None) -> None:
        """Delete an object by key."""
        await self.objects.delete(self._bucket(bucket), key.lstrip("/"))
