"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # FLUX job API (Black Forest Labs)
    bfl_api_key: str = Field(default="", alias="BFL_API_KEY")
    bfl_create_url: str = Field(
        default="https://api.bfl.ai/v1/flux-kontext-pro", alias="BFL_CREATE_URL"
    )
    bfl_output_format: str = Field(default="jpeg", alias="BFL_OUTPUT_FORMAT")
    bfl_cache_ready_assets: bool = Field(default=False, alias="BFL_CACHE_READY_ASSETS")
    bfl_ready_cache_size: int = Field(default=32, ge=1, alias="BFL_READY_CACHE_SIZE")

    # Gemini direct generation
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_image_model: str = Field(
        default="gemini-2.5-flash-image-preview", alias="GEMINI_IMAGE_MODEL"
    )
    gemini_caption_model: str = Field(default="gemini-2.5-flash-lite", alias="GEMINI_CAPTION_MODEL")
    caption_max_words: int = Field(default=8, ge=1, alias="CAPTION_MAX_WORDS")

    # Storage upload function
    upload_endpoint: str = Field(default="", alias="UPLOAD_ENDPOINT")

    # HTTP and polling cadence (used by callers, never by the poll relay itself)
    http_timeout_seconds: float = Field(default=60.0, gt=0, alias="HTTP_TIMEOUT_SECONDS")
    poll_interval_seconds: float = Field(default=1.5, gt=0, alias="POLL_INTERVAL_SECONDS")
    poll_max_attempts: int = Field(default=120, ge=1, alias="POLL_MAX_ATTEMPTS")

    # Preset car photos (<gallery_dir>/source and <gallery_dir>/thumbnail)
    gallery_dir: str = Field(default="public/car", alias="GALLERY_DIR")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Fails fast with one message listing every missing variable. Validation is
        skipped in test environments so tests can build partial settings.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        if not self.bfl_api_key:
            missing.append("BFL_API_KEY: Create an API key at https://dashboard.bfl.ai")

        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY: Create an API key at https://aistudio.google.com")

        if not self.upload_endpoint:
            missing.append("UPLOAD_ENDPOINT: URL of the storage upload function")

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            error_msg += "\nPlease update your .env file and restart."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.app_env == "production":
        renderer_processors = [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_processors = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer_processors,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
