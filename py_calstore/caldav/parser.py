"""Parsing, serializing and redacting iCalendar calendar objects."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field

from icalendar import Calendar as iCalendar
from icalendar import Component

from ..errors import ParseFailure

# Components that carry user content and an access classification
CLASSIFIED_COMPONENTS = ("VEVENT", "VTODO", "VJOURNAL")


@dataclass
class ParsedDocument:
    """An iCalendar document parsed from a calendar object's data."""

    calendar: iCalendar

    def components(self) -> Iterator[Component]:
        """Iterate over classified sub-components in document order."""
        for component in self.calendar.walk():
            if component.name in CLASSIFIED_COMPONENTS:
                yield component

    def component_types(self) -> list[str]:
        """Get the distinct classified component types, in order of appearance."""
        types: list[str] = []
        for component in self.components():
            if component.name not in types:
                types.append(component.name)
        return types


@dataclass(frozen=True)
class RedactionRule:
    """Which components to redact and what to keep of them."""

    classes: frozenset[str] = frozenset({"PRIVATE", "CONFIDENTIAL"})
    keep: frozenset[str] = frozenset(
        {
            "UID",
            "DTSTAMP",
            "CREATED",
            "DTSTART",
            "DTEND",
            "DUE",
            "DURATION",
            "RRULE",
            "RDATE",
            "EXDATE",
            "RECURRENCE-ID",
            "SEQUENCE",
            "CLASS",
        }
    )
    placeholder_summary: str | None = "Busy"
    drop_subcomponents: bool = True
    component_types: tuple[str, ...] = field(default=CLASSIFIED_COMPONENTS)


def access_class(component: Component) -> str:
    """Get the CLASS of a component, PUBLIC when unset (RFC 5545 section 3.8.1.3)."""
    value = component.get("CLASS")
    if value is None:
        return "PUBLIC"
    return str(value).strip().upper()


def parse(payload: str) -> ParsedDocument | ParseFailure:
    """Parse calendar data.

    Never raises: malformed data yields a ParseFailure describing why.
    """
    if not payload or not payload.strip():
        return ParseFailure("empty calendar data")

    try:
        calendar = iCalendar.from_ical(payload)
    except Exception as e:
        return ParseFailure(str(e) or e.__class__.__name__)

    if calendar.name != "VCALENDAR":
        return ParseFailure(f"expected VCALENDAR, got {calendar.name}")

    return ParsedDocument(calendar)


def select(document: ParsedDocument, component_type: str) -> list[Component]:
    """Get all sub-components of a type, at any depth, in document order."""
    return list(document.calendar.walk(component_type.upper()))


def serialize(document: ParsedDocument) -> str:
    """Serialize a document back to iCalendar text."""
    return document.calendar.to_ical().decode("utf-8")


def redact(document: ParsedDocument, rule: RedactionRule | None = None) -> ParsedDocument:
    """Strip classified components down to their time and identifier properties.

    Returns a new document; the input is left untouched.
    """
    rule = rule or RedactionRule()
    redacted = ParsedDocument(copy.deepcopy(document.calendar))

    for component in redacted.calendar.walk():
        if component.name not in rule.component_types:
            continue
        if access_class(component) not in rule.classes:
            continue

        for name in list(component.keys()):
            if name.upper() not in rule.keep:
                del component[name]
        if rule.placeholder_summary is not None:
            component.add("SUMMARY", rule.placeholder_summary)
        if rule.drop_subcomponents:
            component.subcomponents = []

    return redacted


def needs_redaction(original: ParsedDocument, rule: RedactionRule | None = None) -> bool:
    """Check whether redacting a document with a rule would change it."""
    rule = rule or RedactionRule()
    return any(
        access_class(component) in rule.classes
        for component in original.calendar.walk()
        if component.name in rule.component_types
    )
