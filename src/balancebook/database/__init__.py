"""Database layer for balancebook application."""

from balancebook.database.base import Database
from balancebook.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
