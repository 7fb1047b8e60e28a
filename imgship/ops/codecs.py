"""
Decode/encode pairs for the supported raster formats.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from imgship.domain.types.image import ImageFormat
from imgship.exceptions import DecodeError, EncodeError, UnsupportedFormatError
from imgship.io.fs import ensure_parent_dir

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

JPEG_MAX_QUALITY = 100
PNG_MAX_COMPRESS_LEVEL = 9
# 100 / 9: spreads the 0..100 quality scale over PNG's 0..9 levels
_PNG_QUALITY_STEP = 11.111111


def png_compress_level(quality: int) -> int:
    """
    Map a 0..100 quality to a PNG compression level 0..9.

    Higher quality means less compression effort: 100 -> 0, 0 -> 9.
    Halves round up.
    """
    return int(abs((quality - 100) / _PNG_QUALITY_STEP) + 0.5)


def _decode(path: PathLike) -> Image.Image:
    img = Image.open(path)
    img.load()
    return img


def _encode_jpeg(img: Image.Image, dst: PathLike, quality: Optional[int] = None) -> None:
    quality = JPEG_MAX_QUALITY if quality is None else quality
    if img.mode in ("RGB", "L", "CMYK"):
        img.save(dst, format="JPEG", quality=quality)
        return
    with img.convert("RGB") as rgb:
        rgb.save(dst, format="JPEG", quality=quality)


def _encode_png(img: Image.Image, dst: PathLike, quality: Optional[int] = None) -> None:
    level = PNG_MAX_COMPRESS_LEVEL if quality is None else png_compress_level(quality)
    img.save(dst, format="PNG", compress_level=level)


def _encode_gif(img: Image.Image, dst: PathLike, quality: Optional[int] = None) -> None:
    # GIF is palette based and lossless, there is no quality setting
    img.save(dst, format="GIF")


def _encode_bmp(img: Image.Image, dst: PathLike, quality: Optional[int] = None) -> None:
    if img.mode in ("1", "L", "P", "RGB", "RGBA"):
        img.save(dst, format="BMP")
        return
    with img.convert("RGB") as rgb:
        rgb.save(dst, format="BMP")


@dataclass(frozen=True)
class Codec:
    """Decoder and encoder for one format."""

    format: ImageFormat
    decode: Callable[[PathLike], Image.Image]
    encode: Callable[..., None]


CODECS: Dict[ImageFormat, Codec] = {
    ImageFormat.JPEG: Codec(ImageFormat.JPEG, _decode, _encode_jpeg),
    ImageFormat.PNG: Codec(ImageFormat.PNG, _decode, _encode_png),
    ImageFormat.GIF: Codec(ImageFormat.GIF, _decode, _encode_gif),
    ImageFormat.BMP: Codec(ImageFormat.BMP, _decode, _encode_bmp),
}


def get_codec(fmt: ImageFormat) -> Codec:
    return CODECS[fmt]


def detect_format(path: PathLike, allowed: Iterable[ImageFormat] = tuple(ImageFormat)) -> ImageFormat:
    """
    Detect the format from the file content, not the extension.

    :raises DecodeError: file is missing or not an image.
    :raises UnsupportedFormatError: image format is outside ``allowed``.
    """
    allowed = tuple(allowed)
    try:
        with Image.open(path) as img:
            detected = img.format
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Cannot identify image {path}: {e}")
        raise DecodeError(str(path), str(e)) from e

    fmt = ImageFormat.from_pillow(detected)
    if fmt is None or fmt not in allowed:
        logger.error(f"Unsupported image format {detected} for {path}")
        raise UnsupportedFormatError(str(path), detected, [f.value for f in allowed])
    return fmt


@contextmanager
def open_image(
    path: PathLike, allowed: Iterable[ImageFormat] = tuple(ImageFormat)
) -> Iterator[Tuple[ImageFormat, Image.Image]]:
    """
    Decode ``path`` and yield ``(format, image)``.

    The image is closed when the block exits, whether it raises or not.
    """
    fmt = detect_format(path, allowed)
    try:
        img = get_codec(fmt).decode(path)
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.error(f"Cannot decode {fmt.value} image {path}: {e}")
        raise DecodeError(str(path), str(e)) from e
    try:
        yield fmt, img
    finally:
        img.close()


def save_image(img: Image.Image, dst: PathLike, fmt: ImageFormat, quality: Optional[int] = None) -> None:
    """
    Encode ``img`` to ``dst``. ``quality=None`` writes the format's best setting.
    """
    ensure_parent_dir(dst)
    try:
        get_codec(fmt).encode(img, dst, quality)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Cannot encode {fmt.value} image {dst}: {e}")
        raise EncodeError(str(dst), str(e)) from e
