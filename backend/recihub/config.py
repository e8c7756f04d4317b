"""
ReciHub Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the database layer, the transaction runner and the
       recipe service.
When:  Loaded once at module import time.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development against a
    SQLite file. Production deployments point DATABASE_URL at PostgreSQL.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///./file.db or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./recihub.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool settings are ignored for SQLite URLs (see database.create_engine)
    db_pool_size: int = Field(default=20, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Create missing tables on startup (development and tests);
    # deployments run `alembic upgrade head` instead.
    db_create_tables: bool = Field(default=False)

    # ── Transactions ──────────────────────────────────────────────────────
    # Upper bound for one unit of work; 0 disables the deadline
    transaction_timeout_seconds: Optional[float] = Field(default=30.0, ge=0)

    # ── Pagination ────────────────────────────────────────────────────────
    default_page_limit: int = Field(default=10, ge=1, le=1000)
    default_order_by: str = Field(default="id desc")

    # ── Logging ───────────────────────────────────────────────────────────
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

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance — imported throughout the application
settings = Settings()
