"""Calendar object storage."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from ..database import Database, Row, Transaction
from ..errors import NotFoundError
from .calendar_store import CalendarStore
from .caldav import CalendarObject, compute_etag, detect_component_type

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.now(UTC).timestamp())


def _to_object(row: Row) -> CalendarObject:
    return CalendarObject(
        id=row["id"],
        calendar_id=row["calendarid"],
        uri=row["uri"],
        data=row["calendardata"],
        last_modified=row["lastmodified"],
        component_type=row["objecttype"] or "",
        etag=compute_etag(row["calendarid"], row["uri"], row["calendardata"], row["lastmodified"]),
    )


class ObjectStore:
    """Calendar objects (events, todos, journals) keyed by URI within a calendar.

    Every write advances the owning calendar's ctag in the same transaction.
    """

    def __init__(self, database: Database, calendars: CalendarStore) -> None:
        self.database = database
        self.calendars = calendars

    @staticmethod
    def _require_calendar(tx: Transaction, calendar_id: int) -> None:
        if tx.find_calendar(calendar_id) is None:
            raise NotFoundError(f"calendar not found: {calendar_id}")

    def list_objects(self, calendar_id: int) -> list[CalendarObject]:
        """List all objects of a calendar.

        Raises:
            NotFoundError: If the calendar does not exist
        """
        with self.database.begin() as tx:
            self._require_calendar(tx, calendar_id)
            rows = tx.objects(calendar_id)
        return [_to_object(row) for row in rows]

    def get_object(self, calendar_id: int, uri: str) -> CalendarObject | None:
        """Get an object by URI, None if it does not exist."""
        with self.database.begin() as tx:
            row = tx.find_object(calendar_id, uri)
        return _to_object(row) if row is not None else None

    def create_object(self, calendar_id: int, uri: str, data: str) -> CalendarObject:
        """Store a new object.

        Raises:
            NotFoundError: If the calendar does not exist
            ConflictError: If an object with that URI already exists
        """
        values = {
            "calendarid": calendar_id,
            "uri": uri,
            "calendardata": data,
            "lastmodified": _now(),
            "objecttype": detect_component_type(data),
        }
        with self.database.begin() as tx:
            self._require_calendar(tx, calendar_id)
            values["id"] = tx.insert_object(values)
            tx.bump_ctag(calendar_id)

        logger.info(f"Created object {uri} in calendar {calendar_id}")
        return _to_object(values)

    def update_object(self, calendar_id: int, uri: str, data: str) -> CalendarObject:
        """Replace the data of an existing object.

        Raises:
            NotFoundError: If the calendar or the object does not exist
        """
        values = {
            "calendardata": data,
            "lastmodified": _now(),
            "objecttype": detect_component_type(data),
        }
        with self.database.begin() as tx:
            self._require_calendar(tx, calendar_id)
            if not tx.update_object(calendar_id, uri, values):
                raise NotFoundError(f"calendar object not found: {uri}")
            tx.bump_ctag(calendar_id)
            row = tx.find_object(calendar_id, uri)

        logger.info(f"Updated object {uri} in calendar {calendar_id}")
        return _to_object(row)

    def delete_object(self, calendar_id: int, uri: str) -> None:
        """Delete an object.

        Raises:
            NotFoundError: If the calendar or the object does not exist
        """
        with self.database.begin() as tx:
            self._require_calendar(tx, calendar_id)
            if not tx.delete_object(calendar_id, uri):
                raise NotFoundError(f"calendar object not found: {uri}")
            tx.bump_ctag(calendar_id)

        logger.info(f"Deleted object {uri} from calendar {calendar_id}")

    def get_owner(self, calendar_id: int) -> str:
        """Get the principal owning a calendar and therefore its objects."""
        return self.calendars.get(calendar_id).owner
