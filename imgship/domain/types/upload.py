from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from imgship.domain.types.image import ImageFormat
from imgship.io.credentials import DEFAULT_REGION, _normalize_url
from imgship.io.url import split_object_ref

DEFAULT_ACL = "public-read"
DEFAULT_CACHE_CONTROL = "max-age=864000"


class UploadDescriptor(BaseModel):
    """Where and how a processed image is stored. Used for a single upload."""

    bucket: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1, description="Object key, e.g. 'avatars/42.jpg'")
    region: str = DEFAULT_REGION
    access_key_id: Optional[SecretStr] = Field(
        default=None, description="None falls back to the default AWS credential chain"
    )
    secret_access_key: Optional[SecretStr] = None
    endpoint_url: Optional[str] = Field(
        default=None, description="Custom S3 endpoint (MinIO, Spaces, ...)"
    )
    previous_key: Optional[str] = Field(
        default=None, description="Object to delete once the upload succeeds (key or URL)"
    )
    acl: Optional[str] = DEFAULT_ACL
    cache_control: Optional[str] = DEFAULT_CACHE_CONTROL
    content_type: str = ImageFormat.JPEG.mime_type

    model_config = ConfigDict(frozen=True)

    @field_validator("key")
    def strip_leading_slash(cls, v: str) -> str:
        v = v.lstrip("/")
        if not v:
            raise ValueError("key must not be empty")
        return v

    @field_validator("endpoint_url")
    def normalize_endpoint(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_url(v)

    @model_validator(mode="after")
    def check_previous_key(self):
        if self.previous_key:
            bucket, _ = split_object_ref(self.previous_key)
            if bucket is not None and bucket != self.bucket:
                raise ValueError(
                    f"previous_key points to bucket {bucket!r}, the upload goes to {self.bucket!r}"
                )
        return self


class UploadResult(BaseModel):
    """Outcome of the upload pipeline."""

    url: str
    bucket: str
    key: str
    width: int
    height: int
    previous_deleted: Optional[bool] = Field(
        default=None,
        description=(
            "True when the previous object was deleted, False when deleting it failed, "
            "None when there was nothing to delete (no previous key, or the upload "
            "overwrote it under the same key)"
        ),
    )

    model_config = ConfigDict(frozen=True)
