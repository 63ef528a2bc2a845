"""CalDAV calendar properties and how they map to storage fields.

Property names use Clark notation: ``{namespace}local-name``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from lxml import etree

NS_DAV = "DAV:"
NS_CALDAV = "urn:ietf:params:xml:ns:caldav"
NS_CALENDARSERVER = "http://calendarserver.org/ns/"
NS_APPLE_ICAL = "http://apple.com/ns/ical/"


def clark(namespace: str, name: str) -> str:
    """Build a Clark-notation property name."""
    return etree.QName(namespace, name).text


def split_clark(name: str) -> tuple[str | None, str]:
    """Split a Clark-notation name into namespace and local name.

    Raises:
        ValueError: If name is not a valid qualified name
    """
    qname = etree.QName(name)
    return qname.namespace, qname.localname


DISPLAYNAME = clark(NS_DAV, "displayname")
CALENDAR_DESCRIPTION = clark(NS_CALDAV, "calendar-description")
CALENDAR_TIMEZONE = clark(NS_CALDAV, "calendar-timezone")
CALENDAR_ORDER = clark(NS_APPLE_ICAL, "calendar-order")
CALENDAR_COLOR = clark(NS_APPLE_ICAL, "calendar-color")
SUPPORTED_CALENDAR_COMPONENT_SET = clark(NS_CALDAV, "supported-calendar-component-set")
SCHEDULE_CALENDAR_TRANSP = clark(NS_CALDAV, "schedule-calendar-transp")
GETCTAG = clark(NS_CALENDARSERVER, "getctag")

# Component types a calendar may declare support for (RFC 4791 section 5.2.3)
KNOWN_COMPONENTS = ("VEVENT", "VTODO", "VJOURNAL", "VFREEBUSY", "VAVAILABILITY")
DEFAULT_COMPONENTS = ("VEVENT", "VTODO")

DEFAULT_PROPERTY_MAP: dict[str, str] = {
    DISPLAYNAME: "displayname",
    CALENDAR_DESCRIPTION: "description",
    CALENDAR_TIMEZONE: "timezone",
    CALENDAR_ORDER: "calendarorder",
    CALENDAR_COLOR: "calendarcolor",
}


@dataclass(frozen=True)
class SupportedComponentSet:
    """Value of the supported-calendar-component-set property."""

    components: tuple[str, ...] = DEFAULT_COMPONENTS

    @classmethod
    def from_string(cls, value: str) -> SupportedComponentSet:
        """Parse the comma-separated storage form."""
        return cls(tuple(c.strip().upper() for c in value.split(",") if c.strip()))

    def __str__(self) -> str:
        return ",".join(self.components)


@dataclass(frozen=True)
class ScheduleCalendarTransp:
    """Value of the schedule-calendar-transp property (RFC 6638 section 9.1)."""

    value: str = "opaque"

    @property
    def transparent(self) -> bool:
        return self.value == "transparent"

    @classmethod
    def from_flag(cls, transparent: bool) -> ScheduleCalendarTransp:
        return cls("transparent" if transparent else "opaque")


class PropertyMap:
    """Declarative mapping of CalDAV property names to storage field names.

    New properties can be added at runtime with :meth:`register`; fields
    without a dedicated database column are kept in the calendar's
    ``properties`` column.
    """

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        self._fields: dict[str, str] = {}
        for name, field_name in (DEFAULT_PROPERTY_MAP if mapping is None else mapping).items():
            self.register(name, field_name)

    def register(self, name: str, field_name: str) -> None:
        """Map a Clark-notation property name to a storage field."""
        namespace, _ = split_clark(name)
        if not namespace:
            raise ValueError(f"property name must be in Clark notation: {name}")
        if field_name in self._fields.values() and self._fields.get(name) != field_name:
            raise ValueError(f"storage field already mapped: {field_name}")
        self._fields[name] = field_name

    def extend(self, mapping: Mapping[str, str]) -> PropertyMap:
        """Return a copy with additional entries."""
        extended = PropertyMap(self._fields)
        for name, field_name in mapping.items():
            extended.register(name, field_name)
        return extended

    def field(self, name: str) -> str | None:
        return self._fields.get(name)

    def names(self) -> list[str]:
        return list(self._fields)

    def items(self) -> Iterable[tuple[str, str]]:
        return self._fields.items()

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)
