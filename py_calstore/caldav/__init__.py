"""CalDAV calendar storage for py-calstore."""

from .backend import Backend, CalDAVBackend
from .calendar_store import CalendarStore, PropPatchResult, normalize_color
from .caldav import (
    Calendar,
    CalendarObject,
    compute_etag,
    validate_calendar_object,
)
from .db_backend import DatabaseCalDAVBackend
from .object_store import ObjectStore
from .parser import ParsedDocument, RedactionRule, parse, redact, select, serialize
from .properties import (
    CALENDAR_COLOR,
    CALENDAR_DESCRIPTION,
    CALENDAR_ORDER,
    CALENDAR_TIMEZONE,
    DISPLAYNAME,
    GETCTAG,
    SCHEDULE_CALENDAR_TRANSP,
    SUPPORTED_CALENDAR_COMPONENT_SET,
    PropertyMap,
    ScheduleCalendarTransp,
    SupportedComponentSet,
)
from .visibility import Visibility, VisibilityFilter

__all__ = [
    "Backend",
    "CalDAVBackend",
    "DatabaseCalDAVBackend",
    "CalendarStore",
    "ObjectStore",
    "PropPatchResult",
    "normalize_color",
    "Calendar",
    "CalendarObject",
    "compute_etag",
    "validate_calendar_object",
    "ParsedDocument",
    "RedactionRule",
    "parse",
    "redact",
    "select",
    "serialize",
    "CALENDAR_COLOR",
    "CALENDAR_DESCRIPTION",
    "CALENDAR_ORDER",
    "CALENDAR_TIMEZONE",
    "DISPLAYNAME",
    "GETCTAG",
    "SCHEDULE_CALENDAR_TRANSP",
    "SUPPORTED_CALENDAR_COMPONENT_SET",
    "PropertyMap",
    "ScheduleCalendarTransp",
    "SupportedComponentSet",
    "Visibility",
    "VisibilityFilter",
]
