"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Docsift API"
    database_url: str = f"sqlite+pysqlite:///{_BACKEND_DIR / 'data' / 'history.db'}"
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_chat_model: str = "gpt-5.2"
    openai_extraction_model: str = "gpt-4o-mini"
    openai_timeout_seconds: int = 60
    uploads_dir: Path = _BACKEND_DIR / "uploads"
    commands_dir: Path = _BACKEND_DIR / "commands"
    max_upload_bytes: int = 50 * 1024 * 1024
    history_default_limit: int = 200
    history_max_limit: int = 1000
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
