"""Database factory functions for creating database instances."""

import os
from typing import Optional

from cashify.config import Settings, default_database_path
from cashify.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks CASHIFY_DB_PATH
            environment variable, then defaults to ~/.cashify/cashify.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path(os.environ)

    return SQLAlchemyDatabase(f"sqlite:///{database_path}")


def create_database(settings: Settings) -> SQLAlchemyDatabase:
    """Create a database instance for any SQLAlchemy URL in the settings."""
    return SQLAlchemyDatabase(settings.database_url)
