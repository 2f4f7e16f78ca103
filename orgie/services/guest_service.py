"""
orgie.services.guest_service — Event-Scoped Guests
===================================================

A guest is a named participant without an account, registered on one
event by a *patron* user.  Registering a guest also enrols them in the
event's attendee list.  Removing any attendee (guest or user) clears
them from the event and from every term of that event.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from orgie.database.engine import get_session
from orgie.database.models import AttendeeKind, Event, Term, new_id
from orgie.engine.attendees import (
    Attendee,
    Guest,
    contains,
    dump_attendees,
    dump_guests,
    find_guest,
    parse_attendees,
    parse_guests,
    without,
)
from orgie.engine.permissions import ensure_can_act_for
from orgie.engine.stats import strip_member
from orgie.errors import InvalidInput, NotFound
from orgie.services.event_service import load_event_by_uuid

logger = logging.getLogger(__name__)


def add_guest(
    engine: Engine,
    uuid: str,
    first_name: str,
    last_name: str,
    added_by: str,
) -> tuple[Event, Guest]:
    """Register a guest on the event and add them to its attendees."""
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise InvalidInput("First name and last name are required")

    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        guest = Guest(id=new_id(), first_name=first_name, last_name=last_name, added_by=added_by)

        event.guests = dump_guests([*parse_guests(event.guests), guest])
        event.attendees = dump_attendees([*parse_attendees(event.attendees), guest.attendee])
        session.flush()
        logger.info("Guest added → %s on event %s (by %s)", guest.id, event.id, added_by)
        return event, guest


def remove_attendee(
    engine: Engine,
    uuid: str,
    attendee_id: str,
    kind: AttendeeKind | str,
    requester_id: str,
) -> int:
    """Remove a participant from the event and all of its terms.

    Guests are also dropped from the registry and from every team sheet.
    Returns the number of terms whose attendee list changed.
    """
    target = Attendee(id=attendee_id, kind=AttendeeKind(kind))

    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        is_guest = target.kind == AttendeeKind.GUEST
        if is_guest and find_guest(parse_guests(event.guests), target.id) is None:
            raise NotFound("Guest not found")
        ensure_can_act_for(event, target, requester_id)

        event.attendees = dump_attendees(without(parse_attendees(event.attendees), target))
        if is_guest:
            event.guests = dump_guests(g for g in parse_guests(event.guests) if g.id != target.id)

        touched = 0
        for term in session.scalars(select(Term).where(Term.event_id == event.id)):
            attendees = parse_attendees(term.attendees)
            if contains(attendees, target):
                term.attendees = dump_attendees(without(attendees, target))
                touched += 1
            if is_guest:
                statistics = strip_member(term.statistics, target)
                if statistics is not None:
                    term.statistics = statistics

        session.flush()
        logger.info(
            "Attendee removed → %s %s from event %s and %d terms (by %s)",
            target.kind.value, target.id, event.id, touched, requester_id,
        )
        return touched
