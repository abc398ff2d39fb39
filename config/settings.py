"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    CONFIG_PATH: str = Field(default="app_config.json")
    SESSION_CACHE_BACKEND: str = "sqlite"
    SESSION_CACHE_PATH: str = Field(default="data/interview_session.db")
    SESSION_CACHE_KEY: str = "interview_session_cache"

    PREFETCH_WORKERS: int = Field(default=4, ge=1)
    BACKGROUND_DRAIN_TIMEOUT_S: float = Field(default=30.0, gt=0)

    API_KEY_ENV: str = "OPENAI_API_KEY"
    API_KEY_PREFIX: str = "sk-"

    JOB_DESCRIPTION_MIN_CHARS: int = 50
    JOB_DESCRIPTION_MAX_CHARS: int = 10000
    CANDIDATE_CV_MIN_CHARS: int = 50
    CANDIDATE_CV_MAX_CHARS: int = 20000
    ANSWER_MAX_CHARS: int = 5000

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
