"""
Registry of transform implementations addressable by name.
"""

from __future__ import annotations

from typing import Callable, Dict

from imgship.domain.types.image import ImageAsset
from imgship.ops.transforms.compress import compress
from imgship.ops.transforms.convert import convert_to_jpeg
from imgship.ops.transforms.resize import resize, resize_keep_aspect_ratio

# every transform takes (src, dst, **parameters) and returns the written asset
TRANSFORMS: Dict[str, Callable[..., ImageAsset]] = {
    "resize": resize,
    "resize_keep_aspect_ratio": resize_keep_aspect_ratio,
    "compress": compress,
    "convert_to_jpeg": convert_to_jpeg,
}


def get_transform(name: str) -> Callable[..., ImageAsset]:
    try:
        return TRANSFORMS[name]
    except KeyError:
        raise NotImplementedError(f"Unknown transform: {name}") from None
