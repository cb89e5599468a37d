"""Database layer for cashify application."""

from cashify.database.base import Database
from cashify.database.factories import create_database, create_sqlite_database

__all__ = ["Database", "create_database", "create_sqlite_database"]
