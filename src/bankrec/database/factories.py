"""Factory functions for creating learning store instances."""

import os
from pathlib import Path
from typing import Optional

from bankrec.database.sqlalchemy_db import SQLAlchemyLearningStore


def create_sqlite_store(database_path: Optional[str] = None) -> SQLAlchemyLearningStore:
    """Create a SQLite-backed learning store.

    Args:
        database_path: Path to SQLite database file. If None, checks BANKREC_DB_PATH
            environment variable, then defaults to ~/.bankrec/bankrec.db

    Returns:
        SQLAlchemyLearningStore instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("BANKREC_DB_PATH")

    if database_path is None:
        # Default to ~/.bankrec/bankrec.db
        home = Path.home()
        db_dir = home / ".bankrec"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "bankrec.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyLearningStore(database_url)
