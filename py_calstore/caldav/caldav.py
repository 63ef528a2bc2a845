"""CalDAV types stored by the calendar store.

CalDAV is defined in RFC 4791.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from hashlib import md5
from typing import Any

from .parser import ParsedDocument, parse
from .properties import (
    DEFAULT_COMPONENTS,
    GETCTAG,
    SCHEDULE_CALENDAR_TRANSP,
    SUPPORTED_CALENDAR_COMPONENT_SET,
    ScheduleCalendarTransp,
    SupportedComponentSet,
)


@dataclass
class Calendar:
    """CalDAV calendar collection as seen by one principal."""

    id: int
    uri: str
    owner: str
    principal_uri: str = ""
    viewer: str = ""
    ctag: str = "0"
    components: list[str] = field(default_factory=lambda: list(DEFAULT_COMPONENTS))
    transparent: bool = False
    properties: dict[str, Any] = field(default_factory=dict)  # Clark name -> value

    @property
    def shared(self) -> bool:
        """Whether the calendar is shown to someone other than its owner."""
        return bool(self.viewer) and self.viewer != self.owner

    def dav_properties(self) -> dict[str, Any]:
        """Get all WebDAV properties of the calendar in Clark notation."""
        props = dict(self.properties)
        props[GETCTAG] = self.ctag
        props[SUPPORTED_CALENDAR_COMPONENT_SET] = SupportedComponentSet(tuple(self.components))
        props[SCHEDULE_CALENDAR_TRANSP] = ScheduleCalendarTransp.from_flag(self.transparent)
        return props


@dataclass
class CalendarObject:
    """CalDAV calendar object (iCalendar data)."""

    calendar_id: int
    uri: str
    data: str  # iCalendar data as string
    last_modified: int = 0  # UNIX timestamp
    id: int | None = None
    component_type: str = ""
    etag: str = ""

    @property
    def mod_time(self) -> datetime:
        return datetime.fromtimestamp(self.last_modified, tz=UTC)

    @property
    def content_length(self) -> int:
        return len(self.data.encode("utf-8"))


def compute_etag(calendar_id: int, uri: str, data: str, last_modified: int) -> str:
    """Compute the ETag of a calendar object.

    The ETag only depends on the calendar id, object URI, data and
    modification time, so an unchanged object always gets the same one.
    """
    return md5(f"{calendar_id}{uri}{data}{last_modified}".encode()).hexdigest()


def validate_calendar_object(ical_data: str) -> tuple[str, str]:
    """Validate a calendar object according to RFC 4791 section 4.1.

    Args:
        ical_data: iCalendar data as string

    Returns:
        Tuple of (component_type, uid)

    Raises:
        ValueError: If validation fails
    """
    document = parse(ical_data)
    if not isinstance(document, ParsedDocument):
        raise ValueError(f"invalid calendar object: {document.reason}")

    # Calendar object resources MUST NOT specify the METHOD property
    if document.calendar.get("METHOD"):
        raise ValueError("invalid calendar object: calendar resource must not specify METHOD property")

    component_type = ""
    uid = ""
    for component in document.components():
        if not component_type:
            component_type = component.name
        elif component_type != component.name:
            raise ValueError(
                f"invalid calendar object: conflicting component types: {component_type}, {component.name}"
            )

        comp_uid = str(component.get("UID", ""))
        if not uid:
            uid = comp_uid
        elif comp_uid and uid != comp_uid:
            raise ValueError(f"invalid calendar object: conflicting UID values: {uid}, {comp_uid}")

    if not component_type:
        raise ValueError("invalid calendar object: no VEVENT, VTODO or VJOURNAL component")

    return component_type, uid


def detect_component_type(ical_data: str) -> str:
    """Get the first classified component type of calendar data, "" if unknown."""
    document = parse(ical_data)
    if not isinstance(document, ParsedDocument):
        return ""
    types = document.component_types()
    return types[0] if types else ""
