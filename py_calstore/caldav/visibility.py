"""Access classification filtering for shared calendars.

Objects in a calendar are filtered when the viewing principal is not the
calendar's owner:

* Listing drops every object with a ``CLASS:PRIVATE`` event, todo or journal.
  Objects that cannot be parsed are dropped too, so a malformed object never
  leaks and never blocks the rest of the listing.
* Listed and single objects are returned with their confidential
  components stripped down to times and identifiers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from enum import Enum

from ..errors import ParseFailure
from .caldav import CalendarObject
from .parser import (
    CLASSIFIED_COMPONENTS,
    ParsedDocument,
    RedactionRule,
    access_class,
    needs_redaction,
    parse,
    redact,
    select,
    serialize,
)

logger = logging.getLogger(__name__)

CLASS_MARKER = "CLASS"


class Visibility(Enum):
    """How an object is presented to a principal other than its owner."""

    FULLY_VISIBLE = "fully-visible"
    HIDDEN = "hidden"
    REDACTED = "redacted"


class VisibilityFilter:
    """Decides what non-owners get to see of calendar objects."""

    def __init__(self, rule: RedactionRule | None = None, hidden_classes: Iterable[str] = ("PRIVATE",)) -> None:
        self.rule = rule or RedactionRule()
        self.hidden_classes = frozenset(c.upper() for c in hidden_classes)

    def _is_hidden(self, document: ParsedDocument) -> bool:
        for component_type in CLASSIFIED_COMPONENTS:
            for component in select(document, component_type):
                if access_class(component) in self.hidden_classes:
                    return True
        return False

    def evaluate(self, obj: CalendarObject, viewer: str, owner: str) -> Visibility:
        """Decide whether an object appears in a listing for a viewer."""
        if viewer == owner:
            return Visibility.FULLY_VISIBLE

        # Objects written before classification existed carry no CLASS at all
        if CLASS_MARKER not in obj.data:
            return Visibility.FULLY_VISIBLE

        document = parse(obj.data)
        if isinstance(document, ParseFailure):
            logger.warning(
                f"Hiding unparsable object {obj.uri} in calendar {obj.calendar_id} from {viewer}: "
                f"{document.reason}"
            )
            return Visibility.HIDDEN

        if self._is_hidden(document):
            return Visibility.HIDDEN
        return Visibility.FULLY_VISIBLE

    def filter_list(self, objects: Iterable[CalendarObject], viewer: str, owner: str) -> list[CalendarObject]:
        """Get the objects of a listing that a viewer may see, as they may read them."""
        if viewer == owner:
            return list(objects)

        visible = []
        for obj in objects:
            if self.evaluate(obj, viewer, owner) is not Visibility.FULLY_VISIBLE:
                continue
            # Only data mentioning CLASS can need redaction; it parsed in evaluate
            if CLASS_MARKER in obj.data:
                obj, _ = self.for_read(obj, viewer, owner)
            visible.append(obj)
        return visible

    def for_read(self, obj: CalendarObject, viewer: str, owner: str) -> tuple[CalendarObject, Visibility]:
        """Get the version of a single object a viewer may read.

        Raises:
            ParseFailure: If a non-owner reads data that cannot be parsed
        """
        if viewer == owner:
            return obj, Visibility.FULLY_VISIBLE

        document = parse(obj.data)
        if isinstance(document, ParseFailure):
            raise document

        if not needs_redaction(document, self.rule):
            return replace(obj, data=serialize(document)), Visibility.FULLY_VISIBLE

        redacted = redact(document, self.rule)
        logger.debug(f"Redacted object {obj.uri} in calendar {obj.calendar_id} for {viewer}")
        return replace(obj, data=serialize(redacted)), Visibility.REDACTED
