"""A SQL-backed CalDAV calendar store."""

from .caldav import Backend, DatabaseCalDAVBackend
from .config import StoreConfig
from .database import Database
from .errors import (
    CalStoreError,
    ConflictError,
    HTTPError,
    InvalidPropertyError,
    NotFoundError,
    ParseFailure,
    PersistenceError,
    UnsupportedPropertyError,
)

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "DatabaseCalDAVBackend",
    "StoreConfig",
    "Database",
    "CalStoreError",
    "ConflictError",
    "HTTPError",
    "InvalidPropertyError",
    "NotFoundError",
    "ParseFailure",
    "PersistenceError",
    "UnsupportedPropertyError",
]
