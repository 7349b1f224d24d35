"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "InGap Planner"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./ingap.db"
    timezone: str = "UTC"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "ingap"
    planner_provider: str = "openai"
    openai_api_key: str | None = None
    planner_model: str = "gpt-4o"
    planner_temperature: float = 0.4
    planner_timeout_seconds: float = 60.0
    weekly_generation_limit: int = 10
    quota_window_days: int = 7
    calendar_provider: str = "log"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
