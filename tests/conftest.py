"""Shared fixtures for calendar store tests."""

import pytest

from py_calstore import Backend, Database, StoreConfig


@pytest.fixture
def config():
    """Store configuration independent of the environment."""
    return StoreConfig(
        database_url="sqlite://",
        home_set_path="/calendars/",
        principal_prefix="principals/",
        shared_suffix="_shared_by_",
    )


@pytest.fixture
def database():
    """In-memory database with all tables."""
    db = Database("sqlite://")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def backend(database, config):
    """Backend on the in-memory database."""
    return Backend(database, config=config)


@pytest.fixture
def shared_calendar(backend):
    """A calendar owned by bob and shared with alice."""
    calendar_id = backend.create_calendar("bob", "work")
    backend.share_calendar(calendar_id, "alice")
    return calendar_id
