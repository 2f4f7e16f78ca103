"""
orgie.errors — Domain Error Taxonomy
=====================================

Every failure the core can report to a caller.  Services raise these;
``orgie.api.main`` renders them as ``{"detail": message}`` with the
mapped HTTP status.  Authentication (missing / invalid token) is not a
core concern and is raised by the dependency layer instead.
"""

from __future__ import annotations

__all__ = [
    "CapacityExceeded",
    "InvalidInput",
    "InvalidRange",
    "InvalidState",
    "NotFound",
    "OrgieError",
    "Unauthorized",
]


class OrgieError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(OrgieError):
    """Event, term, user or guest lookup missed."""

    status_code = 404


class Unauthorized(OrgieError):
    """Requester lacks the owner / administrator / self / patron privilege."""

    status_code = 403


class InvalidState(OrgieError):
    """Operation not applicable to the entity in its current shape."""

    status_code = 400


class InvalidRange(OrgieError):
    """A date range argument is outside what the operation accepts."""

    status_code = 400


class CapacityExceeded(OrgieError):
    """Term already holds ``maxAttendees`` participants."""

    status_code = 400


class InvalidInput(OrgieError):
    """Business-rule validation of request data failed."""

    status_code = 400
