"""
Storage credential settings loaded from the environment or ``~/imgship.env``.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REGION = "us-east-1"


def _is_ssl_url(url: str) -> bool:
    """_is_ssl_url"""
    parsed_url = urlparse(url)
    return parsed_url.scheme == "https"


def _normalize_url(url: Optional[str]) -> Optional[str]:
    """_normalize_url"""
    if not url:
        return None
    parsed_url = urlparse(url)
    if not parsed_url.scheme:
        url = "http://" + url
    return url.rstrip("/")


class StorageCredentials(BaseSettings):
    """
    Settings model for S3 credentials via environment variables
    or other settings sources supported by `pydantic-settings`.
    """

    S3_ACCESS_KEY_ID: Optional[SecretStr] = None
    S3_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_BUCKET: Optional[str] = None

    S3_REGION: Optional[str] = None
    AWS_REGION: Optional[str] = None
    AWS_DEFAULT_REGION: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file="~/imgship.env",
        extra="ignore",
    )

    def get_region(self) -> str:
        """Get the region from the available environment variables."""
        return self.S3_REGION or self.AWS_REGION or self.AWS_DEFAULT_REGION or DEFAULT_REGION

    def get_endpoint_url(self) -> Optional[str]:
        return _normalize_url(self.S3_ENDPOINT_URL)

    def validate_credentials(self) -> None:
        """Validate that both access keys are present."""
        if self.S3_ACCESS_KEY_ID is None or self.S3_SECRET_ACCESS_KEY is None:
            raise ValueError(
                "Storage credentials are missing: set S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY."
            )
