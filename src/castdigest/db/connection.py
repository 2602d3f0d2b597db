"""Database connection management for SQLite."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from castdigest.db.config import get_db_config

logger = logging.getLogger(__name__)


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Create a new SQLite connection with proper settings.

    Args:
        db_path: Path to database file. Uses config if not provided.

    Returns:
        Configured SQLite connection.
    """
    config = get_db_config()
    if db_path is None:
        db_path = config.database_path

    conn = sqlite3.connect(str(db_path), timeout=config.busy_timeout)

    # Enable WAL mode so status readers never block the writer
    conn.execute("PRAGMA journal_mode=WAL")

    # Enable foreign key constraints
    conn.execute("PRAGMA foreign_keys=ON")

    # Allows waiting for write lock under contention from other processes
    conn.execute(f"PRAGMA busy_timeout={int(config.busy_timeout * 1000)}")

    return conn


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections.

    Yields:
        Database connection that auto-commits on success, rolls back on error.
    """
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: Path | None = None) -> None:
    """Initialize the database with schema.

    Args:
        db_path: Path to database file. Uses config if not provided.
    """
    from castdigest.db.schema import get_schema

    if db_path is None:
        db_path = get_db_config().database_path

    # Ensure directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        conn.executescript(get_schema())
        conn.commit()
    finally:
        conn.close()
    logger.debug(f"Schema applied to {db_path}")
