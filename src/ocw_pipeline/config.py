"""Centralized application configuration via environment variables."""

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All API keys use SecretStr to prevent accidental logging.
    Database URL is assembled from individual components to match
    the official PostgreSQL Docker image environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"

    # --- PostgreSQL ---
    postgres_user: str = "ocw_pipeline"
    postgres_password: SecretStr = SecretStr("secret")
    postgres_db: str = "ocw_pipeline"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Assemble database URL from components.

        Uses psycopg v3 driver which supports both sync (alembic)
        and async (create_async_engine) modes natively.
        """
        password = self.postgres_password.get_secret_value()
        return (
            f"postgresql+psycopg://{self.postgres_user}:{password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # --- LLM API Keys ---
    openrouter_api_key: SecretStr | None = None
    anthropic_api_key: SecretStr | None = None
    openai_api_key: SecretStr | None = None
    gemini_api_key: SecretStr | None = None

    # --- LLM Default Models ---
    openrouter_default_model: str = "google/gemini-3-flash-preview"
    anthropic_default_model: str = "claude-sonnet-4-20250514"
    openai_default_model: str = "gpt-4o-mini"
    gemini_default_model: str = "gemini-2.5-flash"

    # OpenRouter speaks the OpenAI chat-completions API with a custom base_url.
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_timeout_seconds: float = 120.0

    # --- Model Registry ---
    model_registry_path: Path = Path("config/models.yaml")

    # --- Document conversion (LlamaParse) ---
    llama_cloud_api_key: SecretStr | None = None
    llamaparse_base_url: str = "https://api.cloud.llamaindex.ai/api/v2/parse"
    llamaparse_tier: str = "cost_effective"
    conversion_rate_limit: int = 20
    conversion_rate_window_seconds: float = 60.0
    conversion_poll_interval_seconds: float = 5.0
    conversion_timeout_seconds: float = 300.0
    conversion_request_timeout_seconds: float = 60.0

    # --- Course archive host ---
    ocw_base_url: str = "https://ocw.mit.edu"
    lecture_gallery_path: str = "video_galleries/lecture-videos/"
    archival_lookup_delay_seconds: float = 0.5

    # --- File system ---
    scratch_dir: Path = Path("/tmp/ocw-pipeline")
    content_root: Path = Path("public/content/courses")
    public_path_prefix: str = "/content/courses"
    pdf_base_url: str | None = None

    # --- Ordering digest budgets ---
    digest_page_chars: int = 15_000
    digest_total_chars: int = 80_000

    # --- Course catalog ---
    catalog_api_url: str = "https://api.learn.mit.edu/api/v1/courses/"
    catalog_page_size: int = 100
    catalog_upsert_batch_size: int = 200
    catalog_page_delay_seconds: float = 5.0
    catalog_max_attempts: int = 3
    catalog_retry_backoff_seconds: float = 10.0
    catalog_request_timeout_seconds: float = 30.0

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    def course_dir(self, slug: str) -> Path:
        """Per-course public storage directory (PDFs + lecture cache)."""
        return self.content_root / slug

    def public_pdf_path(self, slug: str, filename: str) -> str:
        """Public path under which a course PDF is served."""
        return f"{self.public_path_prefix.rstrip('/')}/{slug}/{filename}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from ocw_pipeline.config import get_settings
        settings = get_settings()
    """
    return Settings()
