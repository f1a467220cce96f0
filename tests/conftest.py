"""Shared pytest fixtures for bankrec tests."""

import tempfile
import os
from pathlib import Path
import pytest

from bankrec.database.factories import create_sqlite_store
from bankrec.domain.learning import LearningService


@pytest.fixture
def temp_store():
    """Create a temporary learning store for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create store
    store = create_sqlite_store(database_path=db_path)
    # Store the path for tests that need it
    store.database_path = db_path
    store.connect()
    store.initialize_schema()

    yield store

    # Cleanup
    store.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def learning_service(temp_store):
    """Create a LearningService with a temporary store."""
    return LearningService(temp_store, "tester")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
