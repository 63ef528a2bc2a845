"""Database-backed CalDAV backend for the HTTP server.

Calendars live under the calendar home set, ``/calendars/<calendar-uri>/``,
and objects under ``/calendars/<calendar-uri>/<object-uri>``. The current
user is taken from ``request.user`` as set by Starlette's
AuthenticationMiddleware.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any
from urllib.parse import unquote

from starlette.requests import Request

from ..errors import CalStoreError, HTTPError
from .backend import Backend
from .calendar_store import PropPatchResult
from .caldav import Calendar, CalendarObject, validate_calendar_object


@contextmanager
def _http_errors() -> Iterator[None]:
    """Translate store errors into HTTP errors."""
    try:
        yield
    except CalStoreError as e:
        raise HTTPError.from_error(e) from e


class DatabaseCalDAVBackend:
    """CalDAV backend storing calendars in a relational database."""

    def __init__(self, backend: Backend, home_set_path: str | None = None) -> None:
        """Initialize backend.

        Args:
            backend: Calendar store backend
            home_set_path: Calendar home set path (from the store config if None)
        """
        self.backend = backend
        self.home_set_path = home_set_path or backend.config.home_set_path

    def _principal(self, request: Request) -> str:
        """Get the authenticated principal of a request."""
        if "user" not in request.scope:
            raise HTTPError(401, Exception("authentication required"))
        user = request.user
        if not user.is_authenticated:
            raise HTTPError(401, Exception("authentication required"))
        return getattr(user, "username", None) or user.display_name

    def _path_parts(self, path: str) -> list[str]:
        if not path.startswith(self.home_set_path):
            raise HTTPError(404, Exception(f"Not a calendar path: {path}"))
        return [unquote(p) for p in path[len(self.home_set_path) :].split("/") if p]

    def _calendar(self, request: Request, path: str) -> Calendar:
        parts = self._path_parts(path)
        if not parts:
            raise HTTPError(404, Exception("Invalid calendar path"))
        with _http_errors():
            return self.backend.find_calendar(self._principal(request), parts[0])

    def _object(self, request: Request, path: str) -> tuple[Calendar, str]:
        parts = self._path_parts(path)
        if len(parts) != 2:
            raise HTTPError(404, Exception("Invalid object path"))
        with _http_errors():
            calendar = self.backend.find_calendar(self._principal(request), parts[0])
        return calendar, parts[1]

    def _require_owner(self, calendar: Calendar) -> None:
        """Reject writes through a share grant, which only grants visibility."""
        if calendar.shared:
            raise HTTPError(403, Exception(f"Calendar is shared read-only by {calendar.owner}: {calendar.uri}"))

    def calendar_path(self, calendar: Calendar) -> str:
        return f"{self.home_set_path}{calendar.uri}/"

    def object_path(self, calendar: Calendar, obj: CalendarObject) -> str:
        return f"{self.calendar_path(calendar)}{obj.uri}"

    async def calendar_home_set_path(self, request: Request) -> str:
        """Get calendar home set path."""
        return self.home_set_path

    async def current_user_principal(self, request: Request) -> str:
        """Get current user principal path."""
        return f"/{self.backend.config.principal_uri(self._principal(request))}/"

    async def list_calendars(self, request: Request) -> list[Calendar]:
        """List all calendars of the current user."""
        with _http_errors():
            return self.backend.get_calendars_for_user(self._principal(request))

    async def get_calendar(self, request: Request, path: str) -> Calendar:
        """Get calendar by path."""
        return self._calendar(request, path)

    async def create_calendar(
        self, request: Request, path: str, properties: Mapping[str, Any] | None = None
    ) -> Calendar:
        """Create a new calendar."""
        parts = self._path_parts(path)
        if len(parts) != 1:
            raise HTTPError(409, Exception(f"Calendars can only be created in the home set: {path}"))

        principal = self._principal(request)
        with _http_errors():
            calendar_id = self.backend.create_calendar(principal, parts[0], properties)
            return self.backend.get_calendar(principal, calendar_id)

    async def update_calendar(
        self, request: Request, path: str, mutations: Mapping[str, Any]
    ) -> PropPatchResult:
        """Update calendar properties."""
        calendar = self._calendar(request, path)
        self._require_owner(calendar)
        with _http_errors():
            return self.backend.update_calendar(calendar.id, mutations)

    async def delete_calendar(self, request: Request, path: str) -> None:
        """Delete a calendar."""
        calendar = self._calendar(request, path)
        self._require_owner(calendar)
        with _http_errors():
            self.backend.delete_calendar(calendar.id)

    async def get_calendar_object(self, request: Request, path: str) -> CalendarObject:
        """Get a calendar object."""
        calendar, uri = self._object(request, path)
        with _http_errors():
            obj = self.backend.get_calendar_object(self._principal(request), calendar.id, uri)
        if obj is None:
            raise HTTPError(404, Exception(f"Calendar object not found: {path}"))
        return obj

    async def list_calendar_objects(self, request: Request, calendar_path: str) -> list[CalendarObject]:
        """List all calendar objects in a calendar."""
        calendar = self._calendar(request, calendar_path)
        with _http_errors():
            return self.backend.get_calendar_objects(self._principal(request), calendar.id)

    async def query_calendar_objects(
        self, request: Request, calendar_path: str, component_type: str
    ) -> list[CalendarObject]:
        """List calendar objects of one component type."""
        objects = await self.list_calendar_objects(request, calendar_path)
        return [obj for obj in objects if obj.component_type == component_type.upper()]

    async def put_calendar_object(
        self,
        request: Request,
        path: str,
        ical_data: str,
        if_none_match: bool = False,
        if_match: str | None = None,
    ) -> CalendarObject:
        """Create or update a calendar object."""
        calendar, uri = self._object(request, path)
        self._require_owner(calendar)

        with _http_errors():
            existing = self.backend.objects.get_object(calendar.id, uri)

        # Check preconditions
        if if_none_match and existing is not None:
            raise HTTPError(412, Exception("Precondition failed: resource already exists"))

        if if_match is not None:
            if existing is None:
                raise HTTPError(412, Exception("Precondition failed: resource does not exist"))
            if if_match.strip() != "*" and if_match.strip().strip('"') != existing.etag:
                raise HTTPError(412, Exception("Precondition failed: ETag mismatch"))

        # Validate calendar data
        try:
            validate_calendar_object(ical_data)
        except ValueError as e:
            raise HTTPError(400, e) from e

        with _http_errors():
            if existing is None:
                return self.backend.create_calendar_object(calendar.id, uri, ical_data)
            return self.backend.update_calendar_object(calendar.id, uri, ical_data)

    async def delete_calendar_object(self, request: Request, path: str) -> None:
        """Delete a calendar object."""
        calendar, uri = self._object(request, path)
        self._require_owner(calendar)
        with _http_errors():
            self.backend.delete_calendar_object(calendar.id, uri)
