"""Database location and locking settings."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """SQLite file shared by every castdigest process on the host."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_path: Path = Path("./data/castdigest.db")

    # Seconds a writer waits for a lock held by another process
    busy_timeout: float = 30.0


_config: Optional[DatabaseConfig] = None


def get_db_config() -> DatabaseConfig:
    """Get database configuration (cached)."""
    global _config
    if _config is None:
        _config = DatabaseConfig()
    return _config


def reload_db_config() -> DatabaseConfig:
    """Re-read DATABASE_PATH and BUSY_TIMEOUT from the environment."""
    global _config
    _config = DatabaseConfig()
    return _config
