"""
Resize transforms: exact box and aspect-ratio preserving fit.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Optional, Tuple

from PIL import Image

from imgship.domain.types.image import ImageAsset, ImageFormat
from imgship.domain.types.request import TransformRequest
from imgship.ops.codecs import PathLike, open_image, save_image

logger = logging.getLogger(__name__)

RESIZABLE_FORMATS = (ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.GIF)
RESAMPLE = Image.Resampling.LANCZOS


def fit_within(
    size: Tuple[int, int], width: Optional[int] = None, height: Optional[int] = None
) -> Tuple[int, int]:
    """
    Target size for ``size`` scaled to ``width``/``height`` keeping the aspect ratio.

    With both sides the result fits inside the box; with one side the other is
    derived from the source ratio. Sides are rounded and never below 1.
    """
    src_width, src_height = size
    ratio = src_width / src_height
    if width and height:
        if width / height > ratio:
            new_width, new_height = height * ratio, height
        else:
            new_width, new_height = width, width / ratio
    elif width:
        new_width, new_height = width, width / ratio
    elif height:
        new_width, new_height = height * ratio, height
    else:
        raise ValueError("At least one of width or height must be provided.")
    return max(1, round(new_width)), max(1, round(new_height))


def _true_color(img: Image.Image) -> Image.Image:
    # palette and bilevel images only support nearest-neighbour resampling
    if img.mode == "P":
        return img.convert("RGBA" if "transparency" in img.info else "RGB")
    if img.mode == "1":
        return img.convert("L")
    return img


def _resample_to(img: Image.Image, size: Tuple[int, int], dst: PathLike, fmt: ImageFormat) -> None:
    with ExitStack() as stack:
        source = _true_color(img)
        if source is not img:
            stack.callback(source.close)
        resized = stack.enter_context(source.resize(size, RESAMPLE))
        save_image(resized, dst, fmt)


def resize(src: PathLike, dst: PathLike, width: int, height: int) -> ImageAsset:
    """
    Resize ``src`` to exactly ``width`` x ``height`` and write it to ``dst``
    in the same format at maximum quality.

    :raises UnsupportedFormatError: ``src`` is not JPEG, PNG or GIF.
    """
    request = TransformRequest(width=width, height=height, keep_aspect_ratio=False)
    size = (request.width, request.height)
    with open_image(src, RESIZABLE_FORMATS) as (fmt, img):
        logger.debug(f"Resizing {src} {img.size} -> {size}")
        _resample_to(img, size, dst, fmt)
    return ImageAsset(path=dst, format=fmt, width=size[0], height=size[1])


def resize_keep_aspect_ratio(
    src: PathLike, dst: PathLike, width: Optional[int] = None, height: Optional[int] = None
) -> ImageAsset:
    """
    Resize ``src`` keeping its aspect ratio and write it to ``dst``.

    If both ``width`` and ``height`` are given the result fits inside that box,
    if only one is given the other is derived from the source ratio.

    :raises ValueError: neither dimension is given.
    :raises UnsupportedFormatError: ``src`` is not JPEG, PNG or GIF.
    """
    request = TransformRequest(width=width, height=height, keep_aspect_ratio=True)
    with open_image(src, RESIZABLE_FORMATS) as (fmt, img):
        size = fit_within(img.size, request.width, request.height)
        logger.debug(f"Resizing {src} {img.size} -> {size} (aspect ratio kept)")
        _resample_to(img, size, dst, fmt)
    return ImageAsset(path=dst, format=fmt, width=size[0], height=size[1])
