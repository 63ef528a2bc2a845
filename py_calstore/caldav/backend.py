"""CalDAV backend: the calendar store as the server framework sees it."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from starlette.requests import Request

from ..config import StoreConfig
from ..database import Database
from .calendar_store import CalendarStore, PropPatchResult
from .caldav import Calendar, CalendarObject
from .object_store import ObjectStore
from .properties import PropertyMap
from .visibility import VisibilityFilter

logger = logging.getLogger(__name__)


class Backend:
    """Calendar storage with shared-calendar filtering.

    Every read takes the viewing principal explicitly. Objects in calendars
    the viewer does not own pass through the visibility filter; writes are
    delegated unfiltered, authorization happens upstream.
    """

    def __init__(
        self,
        database: Database,
        property_map: PropertyMap | None = None,
        config: StoreConfig | None = None,
        visibility: VisibilityFilter | None = None,
    ) -> None:
        self.config = config or StoreConfig()
        self.database = database
        self.calendars = CalendarStore(database, property_map, self.config)
        self.objects = ObjectStore(database, self.calendars)
        self.visibility = visibility or VisibilityFilter()

    @classmethod
    def from_config(cls, config: StoreConfig) -> Backend:
        """Create a backend on the configured database, creating missing tables."""
        database = Database.from_config(config)
        database.create_schema()
        return cls(database, config=config)

    # Calendars

    def get_calendars_for_user(self, principal: str) -> list[Calendar]:
        return self.calendars.list_for_principal(principal)

    def get_calendar(self, principal: str, calendar_id: int) -> Calendar:
        return self.calendars.get(calendar_id, viewer=principal)

    def find_calendar(self, principal: str, uri: str) -> Calendar:
        return self.calendars.find_by_uri(principal, uri)

    def create_calendar(self, principal: str, uri: str, properties: Mapping[str, Any] | None = None) -> int:
        return self.calendars.create(principal, uri, properties)

    def update_calendar(self, calendar_id: int, mutations: Mapping[str, Any]) -> PropPatchResult:
        return self.calendars.update(calendar_id, mutations)

    def delete_calendar(self, calendar_id: int) -> None:
        self.calendars.delete(calendar_id)

    def share_calendar(self, calendar_id: int, principal: str) -> None:
        self.calendars.share(calendar_id, principal)

    def unshare_calendar(self, calendar_id: int, principal: str) -> bool:
        return self.calendars.unshare(calendar_id, principal)

    # Calendar objects

    def get_calendar_objects(self, principal: str, calendar_id: int) -> list[CalendarObject]:
        """List the objects of a calendar the principal may see."""
        owner = self.objects.get_owner(calendar_id)
        objects = self.objects.list_objects(calendar_id)
        visible = self.visibility.filter_list(objects, principal, owner)
        if len(visible) != len(objects):
            logger.debug(
                f"Filtered {len(objects) - len(visible)} of {len(objects)} objects "
                f"in calendar {calendar_id} for {principal}"
            )
        return visible

    def get_calendar_object(self, principal: str, calendar_id: int, uri: str) -> CalendarObject | None:
        """Get one object as the principal may read it, None if it does not exist.

        Raises:
            ParseFailure: If a non-owner reads data that cannot be parsed
        """
        obj = self.objects.get_object(calendar_id, uri)
        if obj is None:
            return None
        owner = self.objects.get_owner(calendar_id)
        visible, _ = self.visibility.for_read(obj, principal, owner)
        return visible

    def create_calendar_object(self, calendar_id: int, uri: str, data: str) -> CalendarObject:
        return self.objects.create_object(calendar_id, uri, data)

    def update_calendar_object(self, calendar_id: int, uri: str, data: str) -> CalendarObject:
        return self.objects.update_object(calendar_id, uri, data)

    def delete_calendar_object(self, calendar_id: int, uri: str) -> None:
        self.objects.delete_object(calendar_id, uri)


class CalDAVBackend(Protocol):
    """CalDAV server backend interface.

    Implementations provide storage and retrieval of calendars and calendar
    objects for the HTTP layer; paths are request paths.
    """

    async def calendar_home_set_path(self, request: Request) -> str:
        """Get the calendar home set path (e.g., "/calendars/")."""
        ...

    async def current_user_principal(self, request: Request) -> str:
        """Get the current user's principal path."""
        ...

    async def list_calendars(self, request: Request) -> list[Calendar]:
        """List all calendars visible to the current user."""
        ...

    async def get_calendar(self, request: Request, path: str) -> Calendar:
        """Get calendar by path.

        Raises:
            HTTPError: If calendar not found (404)
        """
        ...

    async def create_calendar(
        self, request: Request, path: str, properties: Mapping[str, Any] | None = None
    ) -> Calendar:
        """Create a new calendar.

        Raises:
            HTTPError: If calendar already exists (409) or a property is invalid (403)
        """
        ...

    async def update_calendar(
        self, request: Request, path: str, mutations: Mapping[str, Any]
    ) -> PropPatchResult:
        """Update calendar properties atomically."""
        ...

    async def delete_calendar(self, request: Request, path: str) -> None:
        """Delete a calendar and all its objects."""
        ...

    async def get_calendar_object(self, request: Request, path: str) -> CalendarObject:
        """Get a calendar object.

        Raises:
            HTTPError: If object not found (404) or unreadable (422)
        """
        ...

    async def list_calendar_objects(self, request: Request, calendar_path: str) -> list[CalendarObject]:
        """List all calendar objects in a calendar."""
        ...

    async def query_calendar_objects(
        self, request: Request, calendar_path: str, component_type: str
    ) -> list[CalendarObject]:
        """List calendar objects of one component type."""
        ...

    async def put_calendar_object(
        self,
        request: Request,
        path: str,
        ical_data: str,
        if_none_match: bool = False,
        if_match: str | None = None,
    ) -> CalendarObject:
        """Create or update a calendar object.

        Raises:
            HTTPError: If the calendar is shared (403), preconditions fail (412)
                or validation fails (400)
        """
        ...

    async def delete_calendar_object(self, request: Request, path: str) -> None:
        """Delete a calendar object.

        Raises:
            HTTPError: If object not found (404)
        """
        ...
