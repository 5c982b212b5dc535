from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = "sqlite:///./app/data/quiz_results.db"

    # Store backend: "sql" (SQLAlchemy) or "rest" (PostgREST / Supabase)
    store_backend: str = "sql"

    # Hosted backend (only used with store_backend = "rest")
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    rest_timeout_seconds: float = 30.0

    # OpenAI Configuration (Optional - insights are disabled without a key)
    openai_api_key: Optional[str] = None
    openai_llm_model: str = "gpt-4o-mini"
    insights_enabled: bool = True
    insights_temperature: float = 0.3

    # Results Configuration
    summary_fetch_concurrency: int = 4  # Parallel per-quiz submission fetches
    unknown_course_title: str = "Unknown Course"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
