"""Error kinds raised by the calendar store."""

from __future__ import annotations

from http import HTTPStatus


class CalStoreError(Exception):
    """Base class for calendar store errors.

    Each error kind carries the HTTP status the protocol layer should answer with.
    """

    status: int = 500


class NotFoundError(CalStoreError):
    """Calendar or calendar object does not exist."""

    status = 404


class ConflictError(CalStoreError):
    """A calendar or calendar object with the same URI already exists."""

    status = 409


class InvalidPropertyError(CalStoreError):
    """A structured property has the wrong shape."""

    status = 403

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"{name}: {message}")


class UnsupportedPropertyError(CalStoreError):
    """An update targets a property that is not in the property map."""

    status = 403

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"property not supported: {name}")


class ParseFailure(CalStoreError):
    """Calendar data could not be parsed as an iCalendar document.

    Returned (not raised) by the parser; raised where the data has to be
    returned to a client and cannot be.
    """

    status = 422

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"invalid calendar data: {reason}")


class PersistenceError(CalStoreError):
    """The database failed."""

    status = 500


class HTTPError(Exception):
    """HTTP error with status code."""

    def __init__(self, code: int, err: Exception | None = None):
        self.code = code
        self.err = err
        super().__init__(str(self))

    def __str__(self) -> str:
        try:
            text = HTTPStatus(self.code).phrase
        except ValueError:
            text = "Unknown"

        s = f"{self.code} {text}"
        if self.err:
            return f"{s}: {self.err}"
        return s

    @classmethod
    def from_error(cls, err: CalStoreError) -> HTTPError:
        """Translate a store error into the HTTP error the transport sends."""
        return cls(err.status, err)
