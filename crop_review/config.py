"""
Configuration management for the Crop Review backend.

Environment variable loading precedence:
1. Real environment variables (exported in shell) - highest priority
2. `.env.local` file (for local development only, gitignored)
3. Built-in defaults - lowest priority

Note: `.env.local` is intended for local development only and should never be
committed to the repository.
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "0.1.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    HOST: str = Field(default="0.0.0.0", description="Interface the server binds to")
    PORT: int = Field(default=3000, description="Port the server listens on")

    # Storage directories (created on startup)
    UPLOAD_DIR: str = Field(default="uploads", description="Directory for original uploads")
    CROPPED_DIR: str = Field(default="cropped", description="Directory for derived images")

    # File upload limits
    MAX_UPLOAD_MB: int = Field(default=10, description="Maximum upload size in MB")
    MAX_UPLOAD_SIZE_BYTES: int = Field(default=10 * 1024 * 1024, description="Maximum upload size in bytes")

    # Allowed MIME types and filename extensions
    ALLOWED_MIME_TYPES: List[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/tiff"]
    )
    ALLOWED_EXTENSIONS: List[str] = Field(
        default=[".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff"]
    )

    # Transformation
    OUTPUT_JPEG_QUALITY: int = Field(default=90, ge=1, le=95, description="JPEG quality of derived images")
    ALLOW_UPSCALE: bool = Field(default=False, description="Allow bounded fit to enlarge small sources")
    MAX_CUSTOM_DIMENSION_PX: int = Field(default=5000, description="Upper bound for custom crop sides")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: str = Field(default="logs", description="Directory for the application log file")
    TRACE_CALLS: bool = Field(default=False, description="Log entry/exit of traced functions")

    model_config = SettingsConfigDict(
        # Precedence: shell env vars > .env.local > .env > defaults
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings and compute derived fields."""
        super().__init__(**kwargs)
        self.MAX_UPLOAD_SIZE_BYTES = self.MAX_UPLOAD_MB * 1024 * 1024


settings = Settings()
