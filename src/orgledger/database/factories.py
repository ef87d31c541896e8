"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from orgledger.database.sqlalchemy_db import DEFAULT_ORGANIZATION, SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None,
    organization_id: Optional[str] = None,
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance bound to one organization.

    Args:
        database_path: Path to SQLite database file. If None, checks ORGLEDGER_DB_PATH
            environment variable, then defaults to ~/.orgledger/orgledger.db
        organization_id: Tenant to bind to. If None, checks ORGLEDGER_ORG
            environment variable, then defaults to "default"

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("ORGLEDGER_DB_PATH")

    if database_path is None:
        # Default to ~/.orgledger/orgledger.db
        home = Path.home()
        db_dir = home / ".orgledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "orgledger.db")

    if organization_id is None:
        organization_id = os.environ.get("ORGLEDGER_ORG", DEFAULT_ORGANIZATION)

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, organization_id=organization_id)
