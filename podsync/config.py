"""Application configuration management."""
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    PROJECT_NAME: str = "PodSync"
    API_PREFIX: str = "/api/2"

    BACKEND: Literal["sql", "file"] = Field(
        "sql", description="Storage backend selected at startup"
    )
    DATABASE_URL: str = Field(
        "sqlite:///./pod.sql",
        description="SQLAlchemy database URL used by the sql backend",
    )
    DATA_DIR: Path = Field(
        Path("."), description="Root directory of the flat-file backend"
    )

    SESSION_COOKIE_NAME: str = "sessionid"
    SESSION_COOKIE_MAX_AGE_SECONDS: int = Field(
        14 * 24 * 60 * 60, description="Lifetime of the session cookie (two weeks)"
    )
    SECURE_COOKIES: bool = Field(
        False, description="Mark the session cookie as Secure (HTTPS only)"
    )

    HOST: str = "0.0.0.0"
    PORT: int = 80
    LOCAL_ONLY: bool = Field(False, description="Bind to 127.0.0.1 instead of HOST")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        env_prefix="PODSYNC_",
        extra="ignore",
    )

    @property
    def bind_host(self) -> str:
        return "127.0.0.1" if self.LOCAL_ONLY else self.HOST


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


settings = get_settings()
