"""Database layer for orgledger application."""

from orgledger.database.base import Database
from orgledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
