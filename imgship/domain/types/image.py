import enum
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from imgship.exceptions import DecodeError, UnsupportedFormatError


class ImageFormat(str, enum.Enum):
    """Raster formats imgship can read. Values are Pillow format names."""

    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    BMP = "BMP"

    @classmethod
    def from_pillow(cls, name: Optional[str]) -> Optional["ImageFormat"]:
        """Map a Pillow ``Image.format`` to a member, ``None`` if not supported."""
        if name == "MPO":  # multi-picture JPEG written by many cameras
            name = "JPEG"
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def extension(self) -> str:
        return {
            ImageFormat.JPEG: ".jpg",
            ImageFormat.PNG: ".png",
            ImageFormat.GIF: ".gif",
            ImageFormat.BMP: ".bmp",
        }[self]

    @property
    def mime_type(self) -> str:
        return f"image/{self.value.lower()}"


class ImageAsset(BaseModel):
    """A local image file: path, detected format and pixel size."""

    path: str = Field(..., description="Local path of the image file")
    format: ImageFormat = Field(..., description="Detected image format")
    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    model_config = ConfigDict(frozen=True)

    @field_validator("path", mode="before")
    def validate_path(cls, v):
        return str(v)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageAsset":
        """Probe the file header without decoding pixel data."""
        try:
            with Image.open(path) as img:
                detected = img.format
                width, height = img.size
        except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
            raise DecodeError(str(path), str(e)) from e
        fmt = ImageFormat.from_pillow(detected)
        if fmt is None:
            raise UnsupportedFormatError(str(path), detected, [f.value for f in ImageFormat])
        return cls(path=str(path), format=fmt, width=width, height=height)
