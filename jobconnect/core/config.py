"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.

The AI credential is read here once at process start and handed to the
extraction transport explicitly (see services/extraction_client.py).
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database - DATABASE_URL wins, otherwise PostgreSQL parts are used
    database_url: Optional[str] = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "jobconnect_user"
    postgres_password: str = "password"
    postgres_db: str = "jobconnect_db"

    # Uploaded student documents (transcripts, resumes, ...)
    uploads_dir: str = "uploads"
    max_upload_mb: int = 5

    # AI extraction provider: "gemini" or "openai" (any OpenAI-compatible API)
    ai_provider: str = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    ai_timeout_seconds: float = 60.0

    # Retry policy for the extraction call
    ai_max_attempts: int = 3
    ai_backoff_base_ms: int = 1000
    ai_backoff_jitter_ms: int = 1000

    # Applicant screening
    # Comma-separated label alternatives, e.g. "3,2023" matches "Third Year" or "2023"
    transcript_target_year: str = "3,2023"
    applicant_min_average: float = 67.0

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def sqlalchemy_url(self) -> str:
        """Connection URL used to build the SQLAlchemy engine"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def ai_api_key(self) -> str:
        """Credential of the selected AI provider"""
        if self.ai_provider == "openai":
            return self.openai_api_key
        return self.gemini_api_key

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
