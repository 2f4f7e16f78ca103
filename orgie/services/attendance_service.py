"""
orgie.services.attendance_service — Join / Leave Toggles
=========================================================

Attendance is a toggle: the same call joins an absent participant and
removes a present one.  Two levels exist:

* **term** — who is coming to one session; joining respects
  ``Event.max_attendees`` (``0`` means unlimited), leaving never does.
* **event** — interest in the event as a whole; no capacity.

The requester may act for themselves, for a guest they brought, or for
anyone when they manage the event.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from orgie.database.engine import get_session
from orgie.database.models import AttendeeKind, Event, Term, User
from orgie.engine.attendees import (
    Attendee,
    dump_attendees,
    find_guest,
    parse_attendees,
    parse_guests,
    toggle,
)
from orgie.engine.permissions import ensure_can_act_for
from orgie.errors import CapacityExceeded, NotFound
from orgie.services.event_service import load_event_by_uuid
from orgie.services.term_service import load_term

logger = logging.getLogger(__name__)


def _resolve_target(
    session: Session, event: Event, requester_id: str, target: Attendee | None
) -> Attendee:
    """Default to the requester; a guest target must be in the registry."""
    if target is None:
        return Attendee(id=requester_id, kind=AttendeeKind.USER)
    if target.kind == AttendeeKind.GUEST:
        if find_guest(parse_guests(event.guests), target.id) is None:
            raise NotFound("Guest not found")
    return target


def _ensure_user_exists(session: Session, target: Attendee, requester_id: str) -> None:
    """Joining someone else requires their account; leaving never does."""
    if target.kind != AttendeeKind.USER or target.id == requester_id:
        return
    if session.get(User, target.id) is None:
        raise NotFound("User not found")


def toggle_term_attendance(
    engine: Engine,
    term_id: str,
    requester_id: str,
    target: Attendee | None = None,
) -> tuple[Term, bool]:
    """Flip *target* on the term's attendee list.

    Returns ``(term, joined)``.  Raises :class:`CapacityExceeded` when a
    join would exceed the event's capacity.
    """
    with get_session(engine) as session:
        term = load_term(session, term_id)
        event = session.get(Event, term.event_id)
        if event is None:
            raise NotFound("Event not found")

        target = _resolve_target(session, event, requester_id, target)
        ensure_can_act_for(event, target, requester_id)

        attendees = parse_attendees(term.attendees)
        updated, joined = toggle(attendees, target)
        if joined:
            _ensure_user_exists(session, target, requester_id)
        if joined and event.max_attendees > 0 and len(attendees) >= event.max_attendees:
            logger.warning(
                "Term %s is full (%d/%d), refused %s %s",
                term.id, len(attendees), event.max_attendees, target.kind.value, target.id,
            )
            raise CapacityExceeded("Term is full")

        term.attendees = dump_attendees(updated)
        session.flush()
        logger.info(
            "Term attendance %s → term %s, %s %s (by %s)",
            "joined" if joined else "left", term.id, target.kind.value, target.id, requester_id,
        )
        return term, joined


def toggle_event_attendance(
    engine: Engine,
    uuid: str,
    requester_id: str,
    target: Attendee | None = None,
) -> tuple[Event, bool]:
    """Flip *target* on the event-level attendee list (no capacity check)."""
    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        target = _resolve_target(session, event, requester_id, target)
        ensure_can_act_for(event, target, requester_id)

        updated, joined = toggle(parse_attendees(event.attendees), target)
        if joined:
            _ensure_user_exists(session, target, requester_id)
        event.attendees = dump_attendees(updated)
        session.flush()
        logger.info(
            "Event attendance %s → event %s, %s %s (by %s)",
            "joined" if joined else "left", event.id, target.kind.value, target.id, requester_id,
        )
        return event, joined
