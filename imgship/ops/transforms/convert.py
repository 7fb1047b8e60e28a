import logging
from typing import Tuple

from PIL import Image

from imgship.domain.types.image import ImageAsset, ImageFormat
from imgship.ops.codecs import PathLike, open_image, save_image

logger = logging.getLogger(__name__)

CONVERTIBLE_FORMATS = tuple(ImageFormat)
WHITE = (255, 255, 255)


def has_transparency(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info


def flatten(img: Image.Image, background: Tuple[int, int, int] = WHITE) -> Image.Image:
    """
    Return a new RGB (or L) image with any transparency composited onto ``background``.
    """
    if not has_transparency(img):
        if img.mode in ("RGB", "L"):
            return img.copy()
        return img.convert("RGB")

    with img.convert("RGBA") as rgba:
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
    return canvas


def convert_to_jpeg(src: PathLike, dst: PathLike) -> ImageAsset:
    """
    Convert a JPEG, PNG, GIF or BMP image to JPEG at maximum quality.

    Transparent areas become white since JPEG has no alpha channel.
    """
    with open_image(src, CONVERTIBLE_FORMATS) as (fmt, img):
        logger.debug(f"Converting {fmt.value} {src} to JPEG")
        with flatten(img) as flat:
            save_image(flat, dst, ImageFormat.JPEG)
            width, height = flat.size
    return ImageAsset(path=dst, format=ImageFormat.JPEG, width=width, height=height)
