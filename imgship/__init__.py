"""
Public package interface for imgship.

Resize, compress and convert raster images with Pillow and upload the
results to S3-compatible object storage.
"""

from __future__ import annotations

from imgship.api.api import Api
from imgship.api.image_api import ImageApi
from imgship.api.storage_api import StorageApi, StorageConfig
from imgship.domain.types import (
    ImageAsset,
    ImageFormat,
    S3Object,
    TransformRequest,
    UploadDescriptor,
    UploadResult,
)
from imgship.exceptions import (
    DecodeError,
    EncodeError,
    ImgshipError,
    StorageError,
    UnsupportedFormatError,
)
from imgship.io.credentials import StorageCredentials
from imgship.io.url import parse_s3_url
from imgship.ops.pipeline import upload_image
from imgship.ops.transforms.compress import compress
from imgship.ops.transforms.convert import convert_to_jpeg
from imgship.ops.transforms.resize import resize, resize_keep_aspect_ratio

__all__ = [
    "Api",
    "ImageApi",
    "StorageApi",
    "StorageConfig",
    "StorageCredentials",
    "ImageAsset",
    "ImageFormat",
    "S3Object",
    "TransformRequest",
    "UploadDescriptor",
    "UploadResult",
    "ImgshipError",
    "UnsupportedFormatError",
    "DecodeError",
    "EncodeError",
    "StorageError",
    "parse_s3_url",
    "upload_image",
    "resize",
    "resize_keep_aspect_ratio",
    "compress",
    "convert_to_jpeg",
]
