"""
orgie.engine.attendees — Attendee Identity Union & Guest Registry Types
========================================================================

An attendee is either a registered **user** or an event-scoped **guest**,
both referenced by ``(id, kind)``.  Two entries are equal only when both
id *and* kind match, so a user and a guest that happen to share an
identifier are distinct participants.

Guests live inside their owning event (``Event.guests``); event and
term attendee lists and team member lists hold only the
``(id, GUEST)`` reference; names are resolved through the event's registry.

Pure module: no DB access.  Stored JSON is converted at the edges with
:func:`parse_attendees` / :func:`dump_attendees`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from orgie.database.models import AttendeeKind

__all__ = [
    "UNKNOWN_NAME",
    "Attendee",
    "Guest",
    "contains",
    "display_name",
    "dump_attendees",
    "dump_guests",
    "find_guest",
    "parse_attendees",
    "parse_guests",
    "toggle",
    "user_display_name",
    "without",
]

UNKNOWN_NAME = "Unknown"


class NamedUser(Protocol):
    first_name: str | None
    last_name: str | None
    nickname: str | None
    prefer_nickname: bool


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Attendee:
    """Reference to a participant: ``kind`` says which registry ``id`` is in."""

    id: str
    kind: AttendeeKind = AttendeeKind.USER

    @classmethod
    def from_raw(cls, raw: Any) -> Attendee:
        """Build from a stored entry.

        Accepts ``{"id": ..., "kind": ...}`` (kind defaults to USER) and the
        legacy bare-id form written before guests existed.
        """
        if isinstance(raw, Mapping):
            return cls(id=str(raw["id"]), kind=AttendeeKind(raw.get("kind") or AttendeeKind.USER))
        return cls(id=str(raw), kind=AttendeeKind.USER)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "kind": self.kind.value}


@dataclass(frozen=True, slots=True)
class Guest:
    """An ephemeral participant registered on one event by a patron user."""

    id: str
    first_name: str
    last_name: str
    added_by: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def attendee(self) -> Attendee:
        return Attendee(id=self.id, kind=AttendeeKind.GUEST)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Guest:
        return cls(
            id=str(raw["id"]),
            first_name=raw["first_name"],
            last_name=raw["last_name"],
            added_by=str(raw["added_by"]),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "added_by": self.added_by,
        }


# ---------------------------------------------------------------------------
# JSON edges
# ---------------------------------------------------------------------------
def parse_attendees(raw: Iterable[Any] | None) -> list[Attendee]:
    return [Attendee.from_raw(item) for item in raw or ()]


def dump_attendees(attendees: Iterable[Attendee]) -> list[dict[str, str]]:
    return [a.to_dict() for a in attendees]


def parse_guests(raw: Iterable[Mapping[str, Any]] | None) -> list[Guest]:
    return [Guest.from_dict(item) for item in raw or ()]


def dump_guests(guests: Iterable[Guest]) -> list[dict[str, str]]:
    return [g.to_dict() for g in guests]


# ---------------------------------------------------------------------------
# List operations (return new lists, never mutate the input)
# ---------------------------------------------------------------------------
def contains(attendees: Iterable[Attendee], target: Attendee) -> bool:
    return any(a == target for a in attendees)


def without(attendees: Iterable[Attendee], target: Attendee) -> list[Attendee]:
    """Every entry except *target*, order preserved."""
    return [a for a in attendees if a != target]


def toggle(attendees: list[Attendee], target: Attendee) -> tuple[list[Attendee], bool]:
    """Flip *target*'s membership.

    Returns ``(new_list, joined)``: present entries are removed (leave),
    absent ones are appended at the end (join).
    """
    if contains(attendees, target):
        return without(attendees, target), False
    return [*attendees, target], True


def find_guest(guests: Iterable[Guest], guest_id: str) -> Guest | None:
    for guest in guests:
        if guest.id == guest_id:
            return guest
    return None


# ---------------------------------------------------------------------------
# Display names
# ---------------------------------------------------------------------------
def user_display_name(user: NamedUser | None) -> str:
    """Nickname when the user prefers it and has one, else "first last"."""
    if user is None:
        return UNKNOWN_NAME
    if user.prefer_nickname and user.nickname:
        return user.nickname
    full = " ".join(part for part in (user.first_name, user.last_name) if part)
    return full or UNKNOWN_NAME


def display_name(
    attendee: Attendee,
    users: Mapping[str, NamedUser],
    guests: Iterable[Guest],
) -> str:
    """Resolve a human-readable name against the user and guest registries."""
    match attendee.kind:
        case AttendeeKind.USER:
            return user_display_name(users.get(attendee.id))
        case AttendeeKind.GUEST:
            guest = find_guest(guests, attendee.id)
            return guest.full_name if guest else UNKNOWN_NAME
        case _:
            raise ValueError(f"Unhandled attendee kind: {attendee.kind!r}")
