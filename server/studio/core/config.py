from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[2]

# Built UI assets (served with an index.html fallback when present)
DEFAULT_STATIC_DIR = BASE_DIR / "public"

# Output formats understood by the generation endpoint
OUTPUT_MIME_TYPES = ("image/jpeg", "image/png")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "Image Studio API"
    description: str = "Prompt-driven image generation and mask-constrained editing"
    version: str = "1.0.0"

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT", ge=1, le=65535)
    debug: bool = Field(default=False, alias="DEBUG")
    allowed_origins: str = Field(
        default="", alias="ALLOWED_ORIGINS", description="Comma-separated list of CORS origins"
    )

    # Upstream model access
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY", "api_key"),
        description="API key for the Gemini API. Required for /api/generate and /api/edit.",
    )
    generate_model: str = Field(default="imagen-4.0-generate-001", alias="GENERATE_MODEL")
    edit_model: str = Field(default="gemini-2.5-flash-image", alias="EDIT_MODEL")
    output_mime_type: str = Field(default="image/jpeg", alias="OUTPUT_MIME_TYPE")
    upstream_timeout_ms: Optional[int] = Field(
        default=None, alias="UPSTREAM_TIMEOUT_MS", ge=1000,
        description="Timeout for the outbound model call in milliseconds. Unset keeps the SDK default.",
    )

    # Request limits
    max_request_bytes: int = Field(
        default=20 * 1024 * 1024, alias="MAX_REQUEST_BYTES", ge=1024,
        description="Largest accepted JSON body (base64 images are large).",
    )

    static_dir: str = Field(default=str(DEFAULT_STATIC_DIR), alias="STATIC_DIR")

    @field_validator("output_mime_type", mode="before")
    @classmethod
    def validate_output_mime_type(cls, value: str) -> str:
        """Normalize and validate the generation output format."""
        if not value:
            return "image/jpeg"
        normalized = value.strip().lower()
        if normalized not in OUTPUT_MIME_TYPES:
            raise ValueError(
                f"Invalid OUTPUT_MIME_TYPE '{value}'. "
                f"Valid options: {', '.join(OUTPUT_MIME_TYPES)}"
            )
        return normalized

    @property
    def cors_origins(self) -> List[str]:
        """Parsed ALLOWED_ORIGINS."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def api_key_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def static_path(self) -> Path:
        return Path(self.static_dir)


settings = Settings()
