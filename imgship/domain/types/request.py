from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_QUALITY = 90
MAX_QUALITY = 100


class TransformRequest(BaseModel):
    """
    Target geometry and quality for a transform.

    With ``keep_aspect_ratio`` at least one of ``width``/``height`` is required,
    without it both are.
    """

    width: Optional[int] = Field(default=None, gt=0, description="Target width in pixels")
    height: Optional[int] = Field(default=None, gt=0, description="Target height in pixels")
    quality: int = Field(
        default=DEFAULT_QUALITY,
        ge=0,
        le=MAX_QUALITY,
        description="0..100, mapped to a 0..9 compression level for PNG",
    )
    keep_aspect_ratio: bool = True

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_dimensions(self):
        if self.keep_aspect_ratio:
            if self.width is None and self.height is None:
                raise ValueError("At least one of width or height must be provided.")
        elif self.width is None or self.height is None:
            raise ValueError("Both width and height are required for an exact resize.")
        return self
