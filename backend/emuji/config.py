"""
Emuji Backend: Application Configuration
===========================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the app factory, the pool configurator and the server entry point.
When:  Loaded once at module import time; validated before the app starts.

Environment variables:
    DB_USER, DB_PASS, DB_NAME     Database credentials
    CLOUD_SQL_INSTANCE_NAME       Cloud SQL instance, reached via /cloudsql/<name>
    DB_HOST, DB_PORT              TCP alternative to the Cloud SQL socket
    DATABASE_URL                  Full SQLAlchemy URL, overrides everything above
    PORT                          HTTP listen port (default 8080)
"""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL

CLOUD_SQL_SOCKET_DIR = "/cloudsql"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pool values default to the fixed policy the service is deployed with;
    they are exposed as settings so tests and local runs can shrink them.
    """

    # ── Database credentials ──────────────────────────────────────────────
    db_user: str = Field(default="postgres")
    db_pass: str = Field(default="")
    db_name: str = Field(default="postgres")

    # What: Cloud SQL instance connection name (project:region:instance)
    # The database is reached through the unix socket mounted at /cloudsql/<name>
    cloud_sql_instance_name: Optional[str] = Field(default=None)

    # What: Plain TCP host for local development (used when set)
    db_host: Optional[str] = Field(default=None)
    db_port: int = Field(default=5432, ge=1, le=65535)

    # What: Full override, e.g. sqlite+aiosqlite:///./test.db in tests
    database_url: Optional[str] = Field(default=None)

    # ── Connection Pool ───────────────────────────────────────────────────
    # min == max: the pool is effectively fixed-size
    db_pool_min: int = Field(default=5, ge=0, le=100)
    db_pool_max: int = Field(default=5, ge=1, le=100)

    # Maximum wait for a free connection before the request fails
    db_acquire_timeout_ms: int = Field(default=30_000, ge=1)

    # Connections idle in the pool longer than this are replaced on next checkout
    db_idle_timeout_ms: int = Field(default=600_000, ge=1)

    # Connections older than this are closed and reopened between uses.
    # Keep it several minutes below the server-side connection timeout.
    db_max_lifetime_ms: int = Field(default=600_000, ge=1)

    # Pause between attempts after a failed connection creation
    db_create_retry_interval_ms: int = Field(default=200, ge=0)

    # ── Votes ─────────────────────────────────────────────────────────────
    # What: When False, POST / only acknowledges the request (nothing is stored)
    record_votes: bool = Field(default=False)

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @model_validator(mode="after")
    def validate_pool_bounds(self) -> "Settings":
        """The idle floor can never exceed the pool ceiling."""
        if self.db_pool_min > self.db_pool_max:
            raise ValueError(
                f"db_pool_min ({self.db_pool_min}) must not exceed "
                f"db_pool_max ({self.db_pool_max})"
            )
        return self

    @property
    def sqlalchemy_url(self) -> str | URL:
        """
        What:  The URL handed to create_async_engine.
        How:   DATABASE_URL wins; then DB_HOST over TCP; otherwise the
               Cloud SQL unix socket passed as asyncpg's `host` query parameter.
        """
        if self.database_url:
            return self.database_url

        if self.db_host:
            return URL.create(
                "postgresql+asyncpg",
                username=self.db_user,
                password=self.db_pass,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
            )

        query = {}
        if self.cloud_sql_instance_name:
            query["host"] = f"{CLOUD_SQL_SOCKET_DIR}/{self.cloud_sql_instance_name}"
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_pass,
            database=self.db_name,
            query=query,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Checks that the database location is configured.
        When:  Called during app startup (lifespan); errors are logged, not fatal.
        """
        errors = []
        if not self.database_url and not self.db_host and not self.cloud_sql_instance_name:
            errors.append(
                "CLOUD_SQL_INSTANCE_NAME is not set. "
                "Set it (or DB_HOST / DATABASE_URL) so the pool can reach the database."
            )
        if not self.database_url and not self.db_pass:
            errors.append("DB_PASS is empty.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
