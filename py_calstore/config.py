"""Configuration for the calendar store.

Defaults are read from the environment so a deployment can be configured
without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

CALSTORE_DATABASE_URL = os.getenv("CALSTORE_DATABASE_URL")
CALSTORE_HOME_SET_PATH = os.getenv("CALSTORE_HOME_SET_PATH")
CALSTORE_PRINCIPAL_PREFIX = os.getenv("CALSTORE_PRINCIPAL_PREFIX")
CALSTORE_SHARED_SUFFIX = os.getenv("CALSTORE_SHARED_SUFFIX")
CALSTORE_ECHO_SQL = os.getenv("CALSTORE_ECHO_SQL", "")


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StoreConfig:
    """Configuration for the calendar store."""

    # Persistence
    database_url: str = CALSTORE_DATABASE_URL or "sqlite:///calstore.db"
    echo_sql: bool = _env_flag(CALSTORE_ECHO_SQL)

    # Protocol paths
    home_set_path: str = CALSTORE_HOME_SET_PATH or "/calendars/"
    principal_prefix: str = CALSTORE_PRINCIPAL_PREFIX or "principals/"

    # URIs of calendars shared by another principal get this suffix plus the owner
    shared_suffix: str = CALSTORE_SHARED_SUFFIX or "_shared_by_"

    # Additional Clark-notation properties mapped to storage fields
    extra_properties: dict[str, str] = field(default_factory=dict)

    def principal_uri(self, principal: str) -> str:
        """Get the principal URI for a principal id."""
        return f"{self.principal_prefix}{principal}"
