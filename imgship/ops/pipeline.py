"""
Upload pipeline: convert to JPEG, resize, compress, upload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from imgship.domain.types.image import ImageAsset, ImageFormat
from imgship.domain.types.request import TransformRequest
from imgship.domain.types.upload import UploadDescriptor, UploadResult
from imgship.exceptions import StorageError
from imgship.io.fs import silent_remove, unique_temp_path
from imgship.io.url import object_key_from
from imgship.ops.transforms.registry import get_transform

if TYPE_CHECKING:
    from imgship.api.storage_api import StorageApi

logger = logging.getLogger(__name__)


@dataclass
class Operation:
    """One named transform step and its keyword parameters."""

    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)


def upload_operations(request: TransformRequest) -> List[Operation]:
    """Steps applied to an image before upload, in order."""
    resize_name = "resize_keep_aspect_ratio" if request.keep_aspect_ratio else "resize"
    return [
        Operation("convert_to_jpeg"),
        Operation(resize_name, {"width": request.width, "height": request.height}),
        Operation("compress", {"quality": request.quality}),
    ]


def run_operations(
    src: Union[str, Path],
    operations: List[Operation],
    tmp_dir: Optional[Union[str, Path]] = None,
    created: Optional[List[str]] = None,
) -> ImageAsset:
    """
    Apply ``operations`` one after another, each writing a new temp file.

    Paths of the written files are appended to ``created`` as soon as they are
    chosen so the caller can remove them whatever happens.
    """
    created = created if created is not None else []
    current = str(src)
    asset: Optional[ImageAsset] = None
    for op in operations:
        dst = unique_temp_path(suffix=ImageFormat.JPEG.extension, prefix=f"{op.name}_", dir=tmp_dir)
        created.append(dst)
        asset = get_transform(op.name)(current, dst, **op.parameters)
        current = asset.path
    if asset is None:
        return ImageAsset.from_path(current)
    return asset


def upload_image(
    src: Union[str, Path],
    descriptor: UploadDescriptor,
    request: TransformRequest,
    storage: Optional[StorageApi] = None,
    tmp_dir: Optional[Union[str, Path]] = None,
) -> UploadResult:
    """
    Convert ``src`` to JPEG, resize it, compress it and upload it.

    Intermediate files are removed on success and on failure. The source file
    is left untouched. When ``descriptor.previous_key`` is set the previous
    object is deleted after the upload succeeded.

    Without ``storage`` a client is opened from the descriptor credentials and
    closed before returning.
    """
    if storage is None:
        from imgship.api.storage_api import StorageApi

        with StorageApi.from_descriptor(descriptor) as own_storage:
            return upload_image(src, descriptor, request, own_storage, tmp_dir=tmp_dir)

    created: List[str] = []
    try:
        asset = run_operations(src, upload_operations(request), tmp_dir=tmp_dir, created=created)
        url = storage.upload(
            asset.path,
            key=descriptor.key,
            bucket=descriptor.bucket,
            content_type=descriptor.content_type,
            acl=descriptor.acl,
            cache_control=descriptor.cache_control,
        )
    finally:
        for path in created:
            silent_remove(path)

    previous_deleted = None
    if descriptor.previous_key:
        previous_deleted = _delete_previous(storage, descriptor)

    return UploadResult(
        url=url,
        bucket=descriptor.bucket,
        key=descriptor.key,
        width=asset.width,
        height=asset.height,
        previous_deleted=previous_deleted,
    )


def _delete_previous(storage: StorageApi, descriptor: UploadDescriptor) -> Optional[bool]:
    previous_key = object_key_from(descriptor.previous_key)
    if previous_key == descriptor.key:
        # the upload already overwrote it
        return None
    try:
        storage.delete(previous_key, bucket=descriptor.bucket)
    except StorageError as e:
        logger.warning(f"Uploaded {descriptor.key} but could not delete {previous_key}: {e}")
        return False
    return True
