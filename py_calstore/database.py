"""Relational persistence for calendars and calendar objects.

Tables mirror the classic CalDAV backend layout: one row per calendar, one row
per calendar object, plus share grants. All access goes through a
:class:`Transaction` obtained from :meth:`Database.begin`, which commits when
the block exits normally and rolls back on any exception.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import StoreConfig
from .debug import log_statement
from .errors import ConflictError, PersistenceError

logger = logging.getLogger(__name__)

metadata = MetaData()

calendars = Table(
    "calendars",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("userid", String(255), nullable=False),
    Column("uri", String(255), nullable=False),
    Column("displayname", String(255)),
    Column("description", Text),
    Column("timezone", Text),
    Column("calendarorder", Integer, nullable=False, default=0),
    Column("calendarcolor", String(10)),
    Column("components", String(100), nullable=False, default="VEVENT,VTODO"),
    Column("transparent", Boolean, nullable=False, default=False),
    Column("ctag", Integer, nullable=False, default=0),
    Column("properties", Text),  # JSON object of extra mapped fields
    UniqueConstraint("userid", "uri", name="uq_calendars_userid_uri"),
)

calendar_objects = Table(
    "calendar_objects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("calendarid", Integer, ForeignKey("calendars.id", ondelete="CASCADE"), nullable=False),
    Column("uri", String(255), nullable=False),
    Column("calendardata", Text, nullable=False),
    Column("lastmodified", Integer, nullable=False),
    Column("objecttype", String(20), nullable=False, default=""),
    UniqueConstraint("calendarid", "uri", name="uq_calendar_objects_calendarid_uri"),
)

calendar_shares = Table(
    "calendar_shares",
    metadata,
    Column("calendarid", Integer, ForeignKey("calendars.id", ondelete="CASCADE"), primary_key=True),
    Column("principal", String(255), primary_key=True),
)

# Storage fields with a dedicated column; anything else goes into "properties"
CALENDAR_COLUMNS = frozenset(c.name for c in calendars.columns)

Row = dict[str, Any]


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):  # type: ignore
    log_statement(statement, parameters)


class Transaction:
    """Row-level operations bound to one database transaction."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def _one(self, stmt) -> Row | None:  # type: ignore
        row = self.conn.execute(stmt).first()
        return dict(row._mapping) if row is not None else None

    def _all(self, stmt) -> list[Row]:  # type: ignore
        return [dict(row._mapping) for row in self.conn.execute(stmt)]

    # Calendars

    def calendars_for_principal(self, principal: str) -> list[Row]:
        """Get calendars owned by or shared with a principal."""
        shared_ids = select(calendar_shares.c.calendarid).where(calendar_shares.c.principal == principal)
        stmt = (
            select(calendars)
            .where(or_(calendars.c.userid == principal, calendars.c.id.in_(shared_ids)))
            .order_by(calendars.c.calendarorder, calendars.c.id)
        )
        return self._all(stmt)

    def find_calendar(self, calendar_id: int) -> Row | None:
        return self._one(select(calendars).where(calendars.c.id == calendar_id))

    def find_calendar_by_uri(self, userid: str, uri: str) -> Row | None:
        return self._one(select(calendars).where(calendars.c.userid == userid, calendars.c.uri == uri))

    def insert_calendar(self, values: Row) -> int:
        """Insert a calendar row and return its id."""
        try:
            result = self.conn.execute(insert(calendars).values(**values))
        except IntegrityError as e:
            raise ConflictError(f"calendar already exists: {values.get('uri')}") from e
        return int(result.inserted_primary_key[0])

    def update_calendar(self, calendar_id: int, values: Row) -> bool:
        result = self.conn.execute(update(calendars).where(calendars.c.id == calendar_id).values(**values))
        return result.rowcount > 0

    def bump_ctag(self, calendar_id: int) -> None:
        """Advance the change counter of a calendar."""
        self.conn.execute(
            update(calendars).where(calendars.c.id == calendar_id).values(ctag=calendars.c.ctag + 1)
        )

    def delete_calendar(self, calendar_id: int) -> bool:
        """Delete a calendar together with its objects and shares."""
        self.conn.execute(delete(calendar_objects).where(calendar_objects.c.calendarid == calendar_id))
        self.conn.execute(delete(calendar_shares).where(calendar_shares.c.calendarid == calendar_id))
        result = self.conn.execute(delete(calendars).where(calendars.c.id == calendar_id))
        return result.rowcount > 0

    # Shares

    def is_shared_with(self, calendar_id: int, principal: str) -> bool:
        stmt = select(calendar_shares.c.calendarid).where(
            calendar_shares.c.calendarid == calendar_id, calendar_shares.c.principal == principal
        )
        return self.conn.execute(stmt).first() is not None

    def add_share(self, calendar_id: int, principal: str) -> None:
        if not self.is_shared_with(calendar_id, principal):
            self.conn.execute(insert(calendar_shares).values(calendarid=calendar_id, principal=principal))

    def remove_share(self, calendar_id: int, principal: str) -> bool:
        result = self.conn.execute(
            delete(calendar_shares).where(
                calendar_shares.c.calendarid == calendar_id, calendar_shares.c.principal == principal
            )
        )
        return result.rowcount > 0

    # Calendar objects

    def objects(self, calendar_id: int) -> list[Row]:
        stmt = (
            select(calendar_objects)
            .where(calendar_objects.c.calendarid == calendar_id)
            .order_by(calendar_objects.c.id)
        )
        return self._all(stmt)

    def find_object(self, calendar_id: int, uri: str) -> Row | None:
        return self._one(
            select(calendar_objects).where(
                calendar_objects.c.calendarid == calendar_id, calendar_objects.c.uri == uri
            )
        )

    def insert_object(self, values: Row) -> int:
        try:
            result = self.conn.execute(insert(calendar_objects).values(**values))
        except IntegrityError as e:
            raise ConflictError(f"calendar object already exists: {values.get('uri')}") from e
        return int(result.inserted_primary_key[0])

    def update_object(self, calendar_id: int, uri: str, values: Row) -> bool:
        result = self.conn.execute(
            update(calendar_objects)
            .where(calendar_objects.c.calendarid == calendar_id, calendar_objects.c.uri == uri)
            .values(**values)
        )
        return result.rowcount > 0

    def delete_object(self, calendar_id: int, uri: str) -> bool:
        result = self.conn.execute(
            delete(calendar_objects).where(
                calendar_objects.c.calendarid == calendar_id, calendar_objects.c.uri == uri
            )
        )
        return result.rowcount > 0


class Database:
    """Database holding calendars and calendar objects."""

    def __init__(self, url: str = "sqlite://", echo: bool = False, engine: Engine | None = None) -> None:
        """Initialize database.

        Args:
            url: SQLAlchemy database URL (in-memory SQLite by default)
            echo: Log every SQL statement to the "py_calstore.sql" logger
            engine: Use an existing engine instead of creating one from url
        """
        self.engine: Engine = engine if engine is not None else create_engine(url)
        if echo:
            event.listen(self.engine, "before_cursor_execute", _before_cursor_execute)

    @classmethod
    def from_config(cls, config: StoreConfig) -> Database:
        return cls(config.database_url, echo=config.echo_sql)

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Schema creation failed: {e}")
            raise PersistenceError(str(e)) from e

    @contextmanager
    def begin(self) -> Iterator[Transaction]:
        """Open a unit of work.

        Commits when the block exits normally, rolls back otherwise. Database
        errors are re-raised as PersistenceError.
        """
        try:
            with self.engine.begin() as conn:
                yield Transaction(conn)
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise PersistenceError(str(e)) from e

    def dispose(self) -> None:
        self.engine.dispose()
