"""Calendar metadata storage."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config import StoreConfig
from ..database import CALENDAR_COLUMNS, Database, Row
from ..errors import CalStoreError, InvalidPropertyError, NotFoundError, UnsupportedPropertyError
from .caldav import Calendar
from .properties import (
    DEFAULT_COMPONENTS,
    KNOWN_COMPONENTS,
    SCHEDULE_CALENDAR_TRANSP,
    SUPPORTED_CALENDAR_COMPONENT_SET,
    PropertyMap,
    ScheduleCalendarTransp,
    SupportedComponentSet,
)

logger = logging.getLogger(__name__)

# Clients such as older iCal versions send #RRGGBBAA
_COLOR_RE = re.compile(r"(#?)([0-9A-Fa-f]{6})(?:[0-9A-Fa-f]{2})?")

# Values stored when a property is removed and its column is NOT NULL
_FIELD_DEFAULTS: dict[str, Any] = {"calendarorder": 0}

STATUS_OK = 200
STATUS_FORBIDDEN = 403
STATUS_FAILED_DEPENDENCY = 424


def normalize_color(value: str) -> str:
    """Truncate an RGBA color to RGB, leave anything else unchanged."""
    match = _COLOR_RE.fullmatch(value)
    if match is None:
        return value
    return match.group(1) + match.group(2)


@dataclass
class PropPatchResult:
    """Outcome of an atomic calendar property update.

    Every property of the request gets a status: 200 when the update was
    applied, 403 for the properties that were rejected and 424 for the ones
    that failed only because another property was rejected.
    """

    statuses: dict[str, int] = field(default_factory=dict)
    errors: dict[str, CalStoreError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(status == STATUS_OK for status in self.statuses.values())

    def by_status(self) -> dict[int, list[str]]:
        """Group property names by status, as a multistatus response lists them."""
        grouped: dict[int, list[str]] = {}
        for name, status in self.statuses.items():
            grouped.setdefault(status, []).append(name)
        return grouped


class CalendarStore:
    """Calendar CRUD on top of the database.

    Protocol property names are translated to storage fields through a
    PropertyMap, so new properties only need a new map entry.
    """

    def __init__(
        self,
        database: Database,
        property_map: PropertyMap | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        self.database = database
        self.config = config or StoreConfig()
        property_map = property_map or PropertyMap()
        if self.config.extra_properties:
            property_map = property_map.extend(self.config.extra_properties)
        self.property_map = property_map

    def _to_calendar(self, row: Row, viewer: str | None = None) -> Calendar:
        owner = row["userid"]
        viewer = viewer or owner

        uri = row["uri"]
        if viewer != owner:
            uri = f"{uri}{self.config.shared_suffix}{owner}"

        extra = json.loads(row["properties"]) if row.get("properties") else {}
        properties: dict[str, Any] = {}
        for name, field_name in self.property_map.items():
            value = row.get(field_name) if field_name in CALENDAR_COLUMNS else extra.get(field_name)
            properties[name] = "" if value is None else value

        return Calendar(
            id=row["id"],
            uri=uri,
            owner=owner,
            principal_uri=self.config.principal_uri(viewer),
            viewer=viewer,
            ctag=str(row["ctag"] or 0),
            components=list(SupportedComponentSet.from_string(row["components"] or "").components),
            transparent=bool(row["transparent"]),
            properties=properties,
        )

    def _normalize(self, name: str, field_name: str, value: Any) -> Any:
        if field_name == "calendarorder":
            try:
                return int(value)
            except (TypeError, ValueError) as e:
                raise InvalidPropertyError(name, f"must be an integer, got {value!r}") from e
        if not isinstance(value, (str, int, float)):
            raise InvalidPropertyError(name, f"must be a text value, got {type(value).__name__}")
        if field_name == "calendarcolor":
            return normalize_color(str(value))
        return value

    def _split_fields(self, values: Mapping[str, Any]) -> tuple[Row, Row]:
        """Separate values with a dedicated column from the ones kept as JSON."""
        columns = {k: v for k, v in values.items() if k in CALENDAR_COLUMNS}
        extra = {k: v for k, v in values.items() if k not in CALENDAR_COLUMNS}
        return columns, extra

    @staticmethod
    def _components(value: Any) -> str:
        if not isinstance(value, SupportedComponentSet):
            raise InvalidPropertyError(
                SUPPORTED_CALENDAR_COMPONENT_SET, "must be of type SupportedComponentSet"
            )
        if not value.components:
            raise InvalidPropertyError(SUPPORTED_CALENDAR_COMPONENT_SET, "must name at least one component")
        unknown = [c for c in value.components if c not in KNOWN_COMPONENTS]
        if unknown:
            raise InvalidPropertyError(
                SUPPORTED_CALENDAR_COMPONENT_SET, f"unknown component types: {', '.join(unknown)}"
            )
        return str(value)

    @staticmethod
    def _transparent(value: Any) -> bool:
        if not isinstance(value, ScheduleCalendarTransp):
            raise InvalidPropertyError(SCHEDULE_CALENDAR_TRANSP, "must be of type ScheduleCalendarTransp")
        if value.value not in ("opaque", "transparent"):
            raise InvalidPropertyError(SCHEDULE_CALENDAR_TRANSP, f"unknown value: {value.value}")
        return value.transparent

    def list_for_principal(self, principal: str) -> list[Calendar]:
        """List calendars owned by or shared with a principal.

        Calendars owned by someone else get the owner appended to their URI so
        they cannot collide with the principal's own calendars.
        """
        with self.database.begin() as tx:
            rows = tx.calendars_for_principal(principal)
        return [self._to_calendar(row, principal) for row in rows]

    def get(self, calendar_id: int, viewer: str | None = None) -> Calendar:
        """Get a calendar by id.

        Raises:
            NotFoundError: If the calendar does not exist
        """
        with self.database.begin() as tx:
            row = tx.find_calendar(calendar_id)
        if row is None:
            raise NotFoundError(f"calendar not found: {calendar_id}")
        return self._to_calendar(row, viewer)

    def find_by_uri(self, principal: str, uri: str) -> Calendar:
        """Resolve a calendar URI as listed for a principal.

        Raises:
            NotFoundError: If no calendar visible to the principal has that URI
        """
        suffix = self.config.shared_suffix
        with self.database.begin() as tx:
            row = tx.find_calendar_by_uri(principal, uri)
            if row is None and suffix in uri:
                base, owner = uri.rsplit(suffix, 1)
                row = tx.find_calendar_by_uri(owner, base)
                if row is not None and not tx.is_shared_with(row["id"], principal):
                    row = None
        if row is None:
            raise NotFoundError(f"calendar not found: {uri}")
        return self._to_calendar(row, principal)

    def create(self, principal: str, uri: str, properties: Mapping[str, Any] | None = None) -> int:
        """Create a calendar for a principal and return its id.

        Raises:
            InvalidPropertyError: If a structured property has the wrong type
            ConflictError: If the principal already has a calendar with that URI
        """
        properties = properties or {}

        values: Row = {"userid": principal, "uri": uri}

        sccs = properties.get(SUPPORTED_CALENDAR_COMPONENT_SET)
        if sccs is None:
            values["components"] = ",".join(DEFAULT_COMPONENTS)
        else:
            values["components"] = self._components(sccs)

        transp = properties.get(SCHEDULE_CALENDAR_TRANSP)
        values["transparent"] = self._transparent(transp) if transp is not None else False

        fields: Row = {}
        for name, field_name in self.property_map.items():
            if properties.get(name) is not None:
                fields[field_name] = self._normalize(name, field_name, properties[name])

        structured = {SUPPORTED_CALENDAR_COMPONENT_SET, SCHEDULE_CALENDAR_TRANSP}
        ignored = set(properties) - set(self.property_map) - structured
        if ignored:
            logger.debug(f"Ignoring unsupported properties on calendar creation: {sorted(ignored)}")

        fields.setdefault("displayname", "unnamed")
        fields.setdefault("calendarorder", 0)

        columns, extra = self._split_fields(fields)
        values.update(columns)
        values["properties"] = json.dumps(extra) if extra else None
        values["ctag"] = 0

        with self.database.begin() as tx:
            calendar_id = tx.insert_calendar(values)

        logger.info(f"Created calendar {calendar_id} ({principal}/{uri})")
        return calendar_id

    def update(self, calendar_id: int, mutations: Mapping[str, Any]) -> PropPatchResult:
        """Update calendar properties atomically.

        Either every mutation is applied or none is. A None value removes the
        property. On success the calendar's ctag advances.

        Raises:
            NotFoundError: If the calendar does not exist
        """
        supported = set(self.property_map) | {SCHEDULE_CALENDAR_TRANSP}

        with self.database.begin() as tx:
            row = tx.find_calendar(calendar_id)
            if row is None:
                raise NotFoundError(f"calendar not found: {calendar_id}")

            errors: dict[str, CalStoreError] = {}
            new_values: Row = {}
            for name, value in mutations.items():
                if name not in supported:
                    errors[name] = UnsupportedPropertyError(name)
                    continue
                try:
                    if name == SCHEDULE_CALENDAR_TRANSP:
                        new_values["transparent"] = False if value is None else self._transparent(value)
                    else:
                        field_name = self.property_map.field(name)
                        if value is None:
                            new_values[field_name] = _FIELD_DEFAULTS.get(field_name)
                        else:
                            new_values[field_name] = self._normalize(name, field_name, value)
                except InvalidPropertyError as e:
                    errors[name] = e

            if errors:
                result = PropPatchResult(
                    statuses={
                        name: STATUS_FORBIDDEN if name in errors else STATUS_FAILED_DEPENDENCY
                        for name in mutations
                    },
                    errors=errors,
                )
                logger.info(f"Rejected update of calendar {calendar_id}: {sorted(errors)}")
                return result

            if not mutations:
                return PropPatchResult()

            columns, extra = self._split_fields(new_values)
            if extra:
                stored = json.loads(row["properties"]) if row.get("properties") else {}
                stored.update(extra)
                remaining = {k: v for k, v in stored.items() if v is not None}
                columns["properties"] = json.dumps(remaining) if remaining else None
            if columns:
                tx.update_calendar(calendar_id, columns)
            tx.bump_ctag(calendar_id)

        logger.info(f"Updated calendar {calendar_id}: {sorted(mutations)}")
        return PropPatchResult(statuses={name: STATUS_OK for name in mutations})

    def delete(self, calendar_id: int) -> None:
        """Delete a calendar and all its objects.

        Deleting a calendar that no longer exists succeeds.
        """
        with self.database.begin() as tx:
            deleted = tx.delete_calendar(calendar_id)
        if deleted:
            logger.info(f"Deleted calendar {calendar_id}")
        else:
            logger.debug(f"Calendar {calendar_id} already deleted")

    def share(self, calendar_id: int, principal: str) -> None:
        """Make a calendar visible to another principal.

        Raises:
            NotFoundError: If the calendar does not exist
        """
        with self.database.begin() as tx:
            row = tx.find_calendar(calendar_id)
            if row is None:
                raise NotFoundError(f"calendar not found: {calendar_id}")
            if row["userid"] == principal:
                return
            tx.add_share(calendar_id, principal)
        logger.info(f"Shared calendar {calendar_id} with {principal}")

    def unshare(self, calendar_id: int, principal: str) -> bool:
        """Withdraw a share grant. Returns whether one existed."""
        with self.database.begin() as tx:
            removed = tx.remove_share(calendar_id, principal)
        if removed:
            logger.info(f"Unshared calendar {calendar_id} from {principal}")
        return removed
