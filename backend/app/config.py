"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a default: the service runs out-of-the-box on SQLite
    - get_settings() is cached (lru_cache): single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Probe URL falls back to the remote users URL: one endpoint to configure in the common case
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite+aiosqlite:///./roster.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs use postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_auto_create: bool = True

    # Remote user directory
    remote_users_url: str = "https://jsonplaceholder.typicode.com/users"
    remote_timeout_seconds: float = 5.0

    # Connectivity
    connectivity_enabled: bool = True
    connectivity_probe_url: str | None = None
    connectivity_probe_interval_seconds: float = 10.0

    # Ordering
    sort_locale: str | None = None

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def probe_url(self) -> str:
        return self.connectivity_probe_url or self.remote_users_url


@lru_cache
def get_settings() -> Settings:
    return Settings()
