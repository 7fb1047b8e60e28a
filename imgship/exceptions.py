"""
Exception hierarchy raised by image transforms and storage calls.
"""

from __future__ import annotations

from typing import Iterable, Optional


class ImgshipError(Exception):
    """Base class for all imgship errors."""


class UnsupportedFormatError(ImgshipError, ValueError):
    """Source image format is not accepted by the requested operation."""

    def __init__(self, path: str, detected: Optional[str], allowed: Iterable[str] = ()):
        self.path = str(path)
        self.detected = detected
        self.allowed = tuple(allowed)
        msg = f"Unsupported image format {detected or 'unknown'!s} for {self.path}"
        if self.allowed:
            msg += f" (expected one of: {', '.join(self.allowed)})"
        super().__init__(msg)


class DecodeError(ImgshipError):
    """Source file is missing, unreadable or not a valid image."""

    def __init__(self, path: str, reason: str = ""):
        self.path = str(path)
        super().__init__(f"Cannot decode image {self.path}" + (f": {reason}" if reason else ""))


class EncodeError(ImgshipError):
    """Pillow failed to write the destination image."""

    def __init__(self, path: str, reason: str = ""):
        self.path = str(path)
        super().__init__(f"Cannot encode image {self.path}" + (f": {reason}" if reason else ""))


class StorageError(ImgshipError):
    """Object storage call failed. The original exception is kept in ``cause``."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
    ):
        self.cause = cause
        self.bucket = bucket
        self.key = key
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
