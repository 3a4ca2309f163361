"""Configuration management using environment variables"""
import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./benefits_intake.db"


class Settings:
    """Store settings - only what the submission engine needs"""

    def __init__(self):
        # Environment
        self.environment = os.getenv("ENVIRONMENT", "development")

        # Database configuration
        if self.environment == "production":
            self.database_url = self._get_required("DATABASE_URL")
        else:
            self.database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
            if self.database_url == DEFAULT_DATABASE_URL:
                logging.getLogger(__name__).debug(
                    "Using default local SQLite database - set DATABASE_URL to override"
                )

        # Connection pool (ignored for SQLite)
        self.db_pool_size = self._get_int("DB_POOL_SIZE", 10)
        self.db_max_overflow = self._get_int("DB_MAX_OVERFLOW", 20)

        # Upper bound on concurrent data-layer tasks (lookups and transitions)
        self.db_max_concurrency = self._get_int("DB_MAX_CONCURRENCY", 8)
        if self.db_max_concurrency < 1:
            raise ValueError(
                f"DB_MAX_CONCURRENCY must be at least 1, got {self.db_max_concurrency}"
            )

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _get_required(self, key: str) -> str:
        """Get required environment variable or raise error."""
        value = os.getenv(key, "").strip()
        if not value:
            raise ValueError(
                f"Missing required environment variable: {key}. "
                f"Required in production mode."
            )
        return value

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable, failing loudly on garbage."""
        raw = os.getenv(key, "").strip()
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got '{raw}'")


# Global settings instance
settings = Settings()
