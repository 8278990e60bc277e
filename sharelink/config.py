"""
Configuration management for ShareLink.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    app_name: str = Field(default="ShareLink")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Database
    database_url: str = Field(default="sqlite:///./sharelink.db")

    # Blob storage
    storage_uri: str = Field(
        default="file://./uploads",
        description="file://<directory> or s3://<bucket>/<prefix>",
    )
    uploads_url_prefix: str = Field(default="/uploads")
    public_base_url: str = Field(default="http://localhost:8000")
    s3_endpoint_url: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_public_base_url: Optional[str] = Field(default=None)

    # Rendering
    office_viewer_url: str = Field(
        default="https://docs.google.com/gview?embedded=true&url=",
        description="Prefix of the external viewer used for .doc/.docx previews; "
        "the URL-encoded file URL is appended.",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
