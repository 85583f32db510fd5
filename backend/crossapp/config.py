"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - Secret values are SecretStr: never rendered by repr() or logging
    - get_settings() is cached (lru_cache), single instance per process

Design Decisions:
    - connection_secrets seeds the SecretStore: connection records persist only
      the reference key, the value arrives through the environment
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from functools import lru_cache

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Persistence store (database_connections, system_settings)
    database_url: str = (
        "postgresql+asyncpg://crossapp:crossapp@db:5432/crossapp"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql://, asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Default backend (fallback target of the schema router)
    default_backend_url: str = ""
    default_backend_key: SecretStr = SecretStr("")
    default_namespace: str = "academies"

    # SecretStore seed: {"connections/<name>": "<key>"}
    connection_secrets: dict[str, SecretStr] = {}

    # Routing
    schema_tie_break: str = "first_registered"

    # Connection testing
    probe_table: str = "user_profiles_sa2025"
    connection_test_timeout_seconds: float = 10.0

    # Sync queue retry / dead letter
    sync_max_attempts: int = 3
    sync_base_delay_ms: int = 500
    sync_max_delay_ms: int = 30_000
    audit_max_attempts: int = 2
    dead_letter_limit: int = 500

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
