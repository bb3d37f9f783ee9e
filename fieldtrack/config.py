from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "FieldTrack"
    app_version: str = "0.1.0"

    # Supabase project
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    http_timeout_seconds: float = 30.0

    # Media storage
    task_media_bucket: str = "task-media"
    expense_media_bucket: str = "expense-media"
    signed_url_ttl_seconds: int = 3600

    # Photo transform (Pillow)
    image_max_edge: int = 1600
    image_quality: int = 80
    transform_dir: str = ""  # empty → <system temp>/fieldtrack

    # Expenses
    default_currency: str = "TRY"

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_http: str = "WARNING"          # httpx / httpcore, outbound HTTP
    log_level_pipeline: str = "INFO"         # media attachment pipeline
    log_level_mutations: str = "INFO"        # optimistic mutation manager

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/rest/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/storage/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
