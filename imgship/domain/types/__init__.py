"""
Domain models (ImageAsset, TransformRequest, UploadDescriptor, S3Object).
"""

from imgship.domain.types.image import ImageAsset, ImageFormat
from imgship.domain.types.request import TransformRequest
from imgship.domain.types.s3 import S3Object
from imgship.domain.types.upload import UploadDescriptor, UploadResult
