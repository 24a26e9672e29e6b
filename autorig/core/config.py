"""
Centralized Configuration for AutoRig API

All configuration is loaded from environment variables with sensible defaults.
Uses Pydantic Settings for validation and type coercion.

Usage:
    from autorig.core.config import settings

    print(settings.detector.poll_interval)
    print(settings.heuristics.large_image_bytes)
"""

from typing import Optional, List, Tuple, Dict
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# SETTINGS CLASSES
# =============================================================================

class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=3001, description="API server port")
    title: str = Field(default="AutoRig API", description="API title")
    description: str = Field(
        default="Upload an image and receive a layered segmentation plus a matching skeletal rig.",
        description="API description for OpenAPI docs"
    )
    version: str = Field(default="2.0.0", description="API version")
    debug: bool = Field(default=False, description="Enable debug mode")


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed origins"
    )
    allow_credentials: bool = Field(
        default=True,
        description="Allow credentials in CORS requests"
    )
    allow_methods: List[str] = Field(
        default=["*"],
        description="Allowed HTTP methods"
    )
    allow_headers: List[str] = Field(
        default=["*"],
        description="Allowed HTTP headers"
    )

    @property
    def origins(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins or self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


class DetectorSettings(BaseSettings):
    """External detector configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DETECTOR_",
        extra="ignore",
        populate_by_name=True,
    )

    provider: str = Field(
        default="replicate",
        description="Detector provider ('replicate' or 'none')"
    )
    api_token: Optional[str] = Field(
        default=None,
        alias="REPLICATE_API_TOKEN",
        description="Provider API token"
    )
    base_url: str = Field(
        default="https://api.replicate.com/v1",
        description="Provider API base URL"
    )

    # Model versions per detector kind (empty = kind disabled)
    face_model: str = Field(default="", description="Face/landmark detector model version")
    object_model: str = Field(default="", description="Object detector model version")
    style_model: str = Field(default="", description="Art style classifier model version")
    combined_model: str = Field(
        default="",
        description="Single model returning faces, objects and style together"
    )

    # Polling
    poll_interval: float = Field(
        default=2.0,
        gt=0.0,
        description="Seconds between job status polls"
    )
    max_attempts: int = Field(
        default=30,
        ge=1,
        le=30,
        description="Maximum number of status polls per job"
    )
    request_timeout: float = Field(
        default=30.0,
        description="Timeout for a single HTTP request to the provider"
    )

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v):
        """Lowercase provider name, empty means disabled."""
        return (v or "none").strip().lower()

    @property
    def enabled(self) -> bool:
        return self.provider != "none" and bool(self.api_token)

    @property
    def model_versions(self) -> Dict[str, str]:
        """Configured model version per detector kind."""
        if self.combined_model:
            return {"combined": self.combined_model}
        versions = {
            "face": self.face_model,
            "objects": self.object_model,
            "style": self.style_model,
        }
        return {kind: version for kind, version in versions.items() if version}

    @property
    def max_wait_seconds(self) -> float:
        """Upper bound on time spent polling a single job."""
        return self.poll_interval * self.max_attempts


class HeuristicSettings(BaseSettings):
    """Thresholds for file-derived and confidence heuristics."""

    model_config = SettingsConfigDict(
        env_prefix="HEURISTIC_",
        extra="ignore",
    )

    small_image_bytes: int = Field(
        default=50_000,
        ge=1,
        description="Uploads below this size are considered small"
    )
    large_image_bytes: int = Field(
        default=500_000,
        ge=1,
        description="Uploads above this size are considered large (full-body)"
    )
    detailed_image_bytes: int = Field(
        default=1_000_000,
        ge=1,
        description="Uploads above this size get the detailed accessory set"
    )
    min_layer_confidence: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Minimum confidence for detector-derived layers"
    )
    full_body_aspect_ratio: float = Field(
        default=0.75,
        gt=0.0,
        description="Width/height ratio at or below which a composition is full-body"
    )

    @field_validator("detailed_image_bytes")
    @classmethod
    def detailed_above_large(cls, v, info):
        """Detailed cutoff may not sit below the large cutoff."""
        large = info.data.get("large_image_bytes")
        if large is not None and v < large:
            raise ValueError("detailed_image_bytes must be >= large_image_bytes")
        return v


class ImageSettings(BaseSettings):
    """Image upload configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    max_upload_bytes: int = Field(
        default=20_000_000,
        description="Maximum accepted upload size in bytes"
    )
    allowed_formats: Tuple[str, ...] = Field(
        default=("jpg", "jpeg", "png", "webp", "bmp", "gif"),
        description="Allowed image formats"
    )
    processed_url_prefix: str = Field(
        default="/processed",
        description="URL prefix for per-layer image URLs"
    )

    @property
    def allowed_formats_set(self) -> frozenset:
        """Return allowed formats as frozenset for fast lookup."""
        return frozenset(self.allowed_formats)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )


class Settings(BaseSettings):
    """
    Main settings class that combines all configuration sections.

    Usage:
        from autorig.core.config import settings

        print(settings.api.port)
        print(settings.detector.max_attempts)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api: APISettings = Field(default_factory=APISettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    detector: DetectorSettings = Field(default_factory=DetectorSettings)
    heuristics: HeuristicSettings = Field(default_factory=HeuristicSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def cors_origins(self) -> List[str]:
        return self.cors.origins


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Default settings instance
settings = get_settings()


# =============================================================================
# ENVIRONMENT VARIABLE REFERENCE
# =============================================================================
"""
Environment Variables Reference:

API Settings:
    API_HOST                    - API server host (default: 0.0.0.0)
    API_PORT                    - API server port (default: 3001)
    API_DEBUG                   - Enable debug mode (default: false)

CORS Settings:
    CORS_ORIGINS                - Comma-separated allowed origins (default: *)

Detector Settings:
    DETECTOR_PROVIDER           - 'replicate' or 'none' (default: replicate)
    REPLICATE_API_TOKEN         - Provider API token (detection disabled if unset)
    DETECTOR_BASE_URL           - Provider API base URL
    DETECTOR_FACE_MODEL         - Face detector model version
    DETECTOR_OBJECT_MODEL       - Object detector model version
    DETECTOR_STYLE_MODEL        - Style classifier model version
    DETECTOR_COMBINED_MODEL     - Single all-in-one model (overrides the three above)
    DETECTOR_POLL_INTERVAL      - Seconds between polls (default: 2)
    DETECTOR_MAX_ATTEMPTS       - Polls per job, at most 30 (default: 30)

Heuristic Settings:
    HEURISTIC_SMALL_IMAGE_BYTES     - Small upload cutoff (default: 50000)
    HEURISTIC_LARGE_IMAGE_BYTES     - Large upload cutoff (default: 500000)
    HEURISTIC_DETAILED_IMAGE_BYTES  - Detailed upload cutoff (default: 1000000)
    HEURISTIC_MIN_LAYER_CONFIDENCE  - Layer inclusion floor (default: 0.3)
    HEURISTIC_FULL_BODY_ASPECT_RATIO - Full-body width/height ratio (default: 0.75)

Logging Settings:
    LOG_LEVEL                   - Log level (default: INFO)
    LOG_FILE                    - Optional log file path
"""


__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "APISettings",
    "CORSSettings",
    "DetectorSettings",
    "HeuristicSettings",
    "ImageSettings",
    "LoggingSettings",
]
