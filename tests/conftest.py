"""Shared fixtures."""

import pytest

from neo_alerts.logging.context import clear_log_context
from neo_alerts.persistence import close_database, init_database


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite database so worker threads share one schema."""
    db_file = tmp_path / "test.db"
    init_database(f"sqlite:///{db_file}")
    yield db_file
    close_database()


@pytest.fixture(autouse=True)
def reset_log_context():
    clear_log_context()
    yield
    clear_log_context()
