from __future__ import annotations

from typing import Optional

from imgship.domain.types.image import ImageAsset
from imgship.ops.codecs import PathLike
from imgship.ops.transforms.compress import compress
from imgship.ops.transforms.convert import convert_to_jpeg
from imgship.ops.transforms.resize import resize, resize_keep_aspect_ratio


class ImageApi:
    """Local image transforms. Every call writes a new file and returns its :class:`ImageAsset`."""

    def info(self, path: PathLike) -> ImageAsset:
        """Format and pixel size of a local image."""
        return ImageAsset.from_path(path)

    def resize(self, src: PathLike, dst: PathLike, width: int, height: int) -> ImageAsset:
        return resize(src, dst, width, height)

    def resize_keep_aspect_ratio(
        self,
        src: PathLike,
        dst: PathLike,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> ImageAsset:
        return resize_keep_aspect_ratio(src, dst, width, height)

    def compress(self, src: PathLike, dst: PathLike, quality: int) -> ImageAsset:
        return compress(src, dst, quality)

    def convert_to_jpeg(self, src: PathLike, dst: PathLike) -> ImageAsset:
        return convert_to_jpeg(src, dst)
