"""
Environment-based configuration using pydantic-settings.
Everything has a sensible default; override via environment or `.env`.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # ── Core ────────────────────────────────────────────────────────────────
    ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # ── Catalog ─────────────────────────────────────────────────────────────
    CATALOG_URL: str = "https://storage.googleapis.com/uamp/catalog.json"

    # ── HTTP client ──────────────────────────────────────────────────────────
    HTTP_TIMEOUT_SECONDS: int = 30
    HTTP_MAX_REDIRECTS: int = 3
    HTTP_RETRY_ATTEMPTS: int = 3
    HTTP_RETRY_BACKOFF: float = 1.5
    HTTP_USER_AGENT: str = "mediabrowse/0.1"

    # ── Artwork ──────────────────────────────────────────────────────────────
    ARTWORK_SIZE_PX: int = 144
    ARTWORK_CONCURRENCY: int = 8
    ARTWORK_TIMEOUT_SECONDS: int = 15
    ARTWORK_CACHE_DIR: Optional[Path] = None
    PLACEHOLDER_ARTWORK_PATH: Optional[Path] = None

    @field_validator("ARTWORK_CACHE_DIR", mode="before")
    @classmethod
    def ensure_cache_dir(cls, v: Optional[Path]) -> Optional[Path]:
        if v in (None, ""):
            return None
        path = Path(v)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("ARTWORK_SIZE_PX", "ARTWORK_CONCURRENCY", "HTTP_RETRY_ATTEMPTS")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
