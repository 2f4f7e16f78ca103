"""
orgie.engine.permissions — Who May Change What
===============================================

Roles are always relative to one event:

* **owner** — ``Event.owner_id``; the only one allowed to delete the event.
* **manager** — the owner or anyone in ``Event.administrators``.
* **self** — a user acting on their own USER attendance.
* **patron** — the user recorded as ``added_by`` on a guest.

The checks take the event row and a requester id; nothing here touches
the database.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from orgie.database.models import AttendeeKind
from orgie.engine.attendees import Attendee, find_guest, parse_guests
from orgie.errors import Unauthorized

logger = logging.getLogger(__name__)

__all__ = [
    "can_act_for",
    "ensure_can_act_for",
    "ensure_manager",
    "ensure_owner",
    "is_manager",
    "is_owner",
]


class EventLike(Protocol):
    id: str
    owner_id: str
    administrators: Sequence[str]
    guests: Sequence[dict]


def is_owner(event: EventLike, user_id: str) -> bool:
    return event.owner_id == user_id


def is_manager(event: EventLike, user_id: str) -> bool:
    return is_owner(event, user_id) or user_id in (event.administrators or ())


def can_act_for(event: EventLike, target: Attendee, requester_id: str) -> bool:
    """May *requester_id* change *target*'s participation in *event*?"""
    if target.kind == AttendeeKind.USER and target.id == requester_id:
        return True
    if is_manager(event, requester_id):
        return True
    if target.kind == AttendeeKind.GUEST:
        guest = find_guest(parse_guests(event.guests), target.id)
        return guest is not None and guest.added_by == requester_id
    return False


def ensure_owner(event: EventLike, user_id: str) -> None:
    if not is_owner(event, user_id):
        logger.warning("User %s refused: not owner of event %s", user_id, event.id)
        raise Unauthorized("User not authorized")


def ensure_manager(event: EventLike, user_id: str) -> None:
    if not is_manager(event, user_id):
        logger.warning("User %s refused: not a manager of event %s", user_id, event.id)
        raise Unauthorized("Not authorized to manage this event")


def ensure_can_act_for(event: EventLike, target: Attendee, requester_id: str) -> None:
    if not can_act_for(event, target, requester_id):
        logger.warning(
            "User %s refused: cannot act for %s %s on event %s",
            requester_id, target.kind.value, target.id, event.id,
        )
        raise Unauthorized("User not authorized to change this attendee")
