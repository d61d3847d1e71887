"""Application settings using environment variables."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Environment-driven configuration for the users API."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    USERS_DB_HOST: str = Field("localhost")
    USERS_DB_PORT: int = Field(3306)
    USERS_DB_NAME: str = Field("users")
    USERS_DB_USER: str = Field("root")
    USERS_DB_PASSWORD: str = Field("")
    USERS_DB_CHARSET: str = Field("utf8mb4")
    DATABASE_URL: Optional[str] = Field(None)

    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(8080)
    PUBLIC_BASE_URL: str = Field("http://localhost:8080")
    CORS_ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    UPLOAD_DIR: Path = Field(BACKEND_ROOT / "uploads")
    UPLOAD_URL_PREFIX: str = Field("/uploads")
    DELETE_IMAGE_ON_USER_DELETE: bool = Field(False)

    EXPOSE_ERROR_DETAILS: bool = Field(True)
    LOG_LEVEL: str = Field("INFO")

    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy URL, preferring an explicit DATABASE_URL over the MySQL parts."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+pymysql://{self.USERS_DB_USER}:{self.USERS_DB_PASSWORD}"
            f"@{self.USERS_DB_HOST}:{self.USERS_DB_PORT}/{self.USERS_DB_NAME}"
            f"?charset={self.USERS_DB_CHARSET}"
        )


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing env."""
    return Settings()
