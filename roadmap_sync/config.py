"""Client Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can be overridden with a ROADMAP_-prefixed environment variable
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults target a local backend: works out-of-the-box in development
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="ROADMAP_", case_sensitive=False,
    )

    # Backend
    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 10.0

    @field_validator("api_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Routes are joined as <base>/api/<concept>/<op>."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # Resource content uploads; must match what storage signs the URL with
    content_type: str = "text/markdown; charset=UTF-8"

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
