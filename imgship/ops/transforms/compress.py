import logging

from imgship.domain.types.image import ImageAsset, ImageFormat
from imgship.domain.types.request import MAX_QUALITY
from imgship.ops.codecs import PathLike, open_image, png_compress_level, save_image

logger = logging.getLogger(__name__)

COMPRESSIBLE_FORMATS = (ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.GIF)


def compress(src: PathLike, dst: PathLike, quality: int) -> ImageAsset:
    """
    Re-encode ``src`` into ``dst`` with the given 0..100 quality.

    JPEG uses ``quality`` as is, PNG maps it to a 0..9 compression level,
    GIF is re-encoded losslessly.
    """
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= MAX_QUALITY:
        raise ValueError(f"quality must be an integer between 0 and {MAX_QUALITY}, got {quality!r}")
    with open_image(src, COMPRESSIBLE_FORMATS) as (fmt, img):
        if fmt is ImageFormat.PNG:
            logger.debug(f"Compressing {src} at PNG level {png_compress_level(quality)}")
        else:
            logger.debug(f"Compressing {src} at quality {quality}")
        save_image(img, dst, fmt, quality=quality)
        width, height = img.size
    return ImageAsset(path=dst, format=fmt, width=width, height=height)
