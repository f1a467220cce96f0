"""Learning store persistence for bankrec."""

from bankrec.database.base import LearningStore
from bankrec.database.factories import create_sqlite_store

__all__ = ["LearningStore", "create_sqlite_store"]
