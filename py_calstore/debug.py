"""Debug logging utilities for the calendar store."""

from __future__ import annotations

import logging

logger = logging.getLogger("py_calstore")
sql_logger = logging.getLogger("py_calstore.sql")


def log_statement(statement: str, parameters: object) -> None:
    """Log a SQL statement sent to the database.

    Args:
        statement: Compiled SQL text
        parameters: Bound parameters
    """
    sql_logger.debug(f"SQL: {' '.join(statement.split())}")
    if parameters:
        sql_logger.debug(f"  params: {parameters!r}")


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"))
    return handler


def setup_debug_logging() -> None:
    """Configure debug logging for the calendar store."""
    logger.setLevel(logging.DEBUG)
    logger.addHandler(_console_handler())

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False


def setup_sql_debug_logging() -> None:
    """Configure debug logging of every SQL statement."""
    sql_logger.setLevel(logging.DEBUG)
    if not logger.handlers:
        sql_logger.addHandler(_console_handler())
        sql_logger.propagate = False
