from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from imgship.api.image_api import ImageApi
from imgship.api.storage_api import StorageApi
from imgship.domain.types.request import DEFAULT_QUALITY, TransformRequest
from imgship.domain.types.upload import (
    DEFAULT_ACL,
    DEFAULT_CACHE_CONTROL,
    UploadDescriptor,
    UploadResult,
)
from imgship.io.credentials import DEFAULT_REGION, StorageCredentials
from imgship.io.env import load_env
from imgship.ops.pipeline import upload_image


class Api:
    """
    Entry point: local image transforms (``images``), object storage
    (``storage``) and the combined ``upload_image`` pipeline.
    """

    def __init__(
        self,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        bucket: Optional[str] = None,
        tmp_dir: Optional[Union[str, Path]] = None,
    ):
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._region = region or DEFAULT_REGION
        self._endpoint_url = endpoint_url
        self.bucket = bucket
        self.tmp_dir = tmp_dir

        self._storage_api: Optional[StorageApi] = None
        self.images = ImageApi()

    @property
    def storage(self) -> StorageApi:
        """Storage API client."""
        if self._storage_api is None:
            self._storage_api = StorageApi(
                access_key_id=self._access_key_id,
                secret_access_key=self._secret_access_key,
                region=self._region,
                endpoint_url=self._endpoint_url,
                default_bucket=self.bucket,
            )
        return self._storage_api

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Api":
        """Create API client from environment variables (and ``.env`` / ``~/imgship.env``)."""
        load_env(env_path)
        creds = StorageCredentials()
        creds.validate_credentials()
        return cls(
            access_key_id=creds.S3_ACCESS_KEY_ID.get_secret_value(),
            secret_access_key=creds.S3_SECRET_ACCESS_KEY.get_secret_value(),
            region=creds.get_region(),
            endpoint_url=creds.get_endpoint_url(),
            bucket=creds.S3_BUCKET,
        )

    def close(self) -> None:
        if self._storage_api is not None:
            self._storage_api.close()
            self._storage_api = None

    def upload_image(
        self,
        src: Union[str, Path],
        key: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        quality: int = DEFAULT_QUALITY,
        bucket: Optional[str] = None,
        previous_key: Optional[str] = None,
        acl: Optional[str] = DEFAULT_ACL,
        cache_control: Optional[str] = DEFAULT_CACHE_CONTROL,
    ) -> UploadResult:
        """
        Convert ``src`` to JPEG, fit it into ``width`` x ``height`` keeping the
        aspect ratio, compress it and upload it under ``key``.

        :param previous_key: Key or URL of an object to delete after the upload.
        :raises ValueError: neither ``width`` nor ``height`` given, or no bucket.
        :raises UnsupportedFormatError: ``src`` is not JPEG, PNG, GIF or BMP.
        :raises StorageError: the upload failed.
        """
        bucket = bucket or self.bucket
        if not bucket:
            raise ValueError("Bucket name is required (no default bucket configured).")
        descriptor = UploadDescriptor(
            bucket=bucket,
            key=key,
            region=self._region,
            access_key_id=self._access_key_id,
            secret_access_key=self._secret_access_key,
            endpoint_url=self._endpoint_url,
            previous_key=previous_key,
            acl=acl,
            cache_control=cache_control,
        )
        request = TransformRequest(width=width, height=height, quality=quality)
        return upload_image(src, descriptor, request, self.storage, tmp_dir=self.tmp_dir)
