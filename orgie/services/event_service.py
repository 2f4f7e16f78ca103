"""
orgie.services.event_service — Event Lifecycle
===============================================

Create / update / delete events and the read models around them
(public lookup by uuid, "my events", dashboard).

Rules:
  * The owner is always one of the administrators.
  * ONE_TIME events carry a date (today or later at creation) and get
    their single term immediately; RECURRING events carry a rule and get
    terms only through the generator.
  * Only the owner may delete; deletion removes every term first
    (no FK cascade is relied on).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from orgie.database.engine import get_session
from orgie.database.models import AttendeeKind, Event, EventType, Term
from orgie.engine.archive import split_terms, today as local_today
from orgie.engine.attendees import Attendee, contains, parse_attendees
from orgie.engine.permissions import ensure_manager, ensure_owner, is_manager
from orgie.engine.recurrence import Recurrence, normalize_day
from orgie.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookup helpers (shared by the other services)
# ---------------------------------------------------------------------------
def load_event(session: Session, event_id: str) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def load_event_by_uuid(session: Session, uuid: str) -> Event:
    event = session.scalar(select(Event).where(Event.uuid == uuid))
    if event is None:
        raise NotFound("Event not found")
    return event


def load_terms(session: Session, event_id: str) -> list[Term]:
    return list(session.scalars(
        select(Term).where(Term.event_id == event_id).order_by(Term.date)
    ).all())


def _with_owner(administrators: list[str] | None, owner_id: str) -> list[str]:
    """Deduplicated administrator ids, owner included, order preserved."""
    result: list[str] = []
    for admin_id in [*(administrators or []), owner_id]:
        if admin_id and admin_id not in result:
            result.append(admin_id)
    return result


def _recurrence_dict(recurrence: Recurrence | dict | None) -> dict | None:
    if recurrence is None:
        return None
    if isinstance(recurrence, Recurrence):
        return recurrence.to_dict()
    parsed = Recurrence.from_dict(recurrence)
    return parsed.to_dict() if parsed else None


def _validate_type(
    event_type: EventType,
    event_date: date | None,
    recurrence: dict | None,
) -> None:
    if event_type == EventType.ONE_TIME and event_date is None:
        raise InvalidInput("Date is required for ONE_TIME events")
    if event_type == EventType.RECURRING and not recurrence:
        raise InvalidInput("Recurrence details are required for RECURRING events")


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def create_event(
    engine: Engine,
    owner_id: str,
    *,
    name: str,
    start_time: str,
    end_time: str,
    type: EventType = EventType.ONE_TIME,
    place: str | None = None,
    date: date | None = None,
    recurrence: Recurrence | dict | None = None,
    administrators: list[str] | None = None,
    min_attendees: int = 0,
    max_attendees: int = 0,
    today: date | None = None,
) -> Event:
    """Create an event; ONE_TIME events also get their single term."""
    event_type = EventType(type)
    event_date = normalize_day(date) if date is not None else None
    rule = _recurrence_dict(recurrence)
    _validate_type(event_type, event_date, rule)
    if event_type == EventType.ONE_TIME and event_date < (today or local_today()):
        raise InvalidInput("Date must be in the future for ONE_TIME events")

    with get_session(engine) as session:
        event = Event(
            name=name,
            place=place,
            owner_id=owner_id,
            type=event_type.value,
            start_time=start_time,
            end_time=end_time,
            date=event_date if event_type == EventType.ONE_TIME else None,
            recurrence=rule if event_type == EventType.RECURRING else None,
            administrators=_with_owner(administrators, owner_id),
            attendees=[],
            guests=[],
            min_attendees=min_attendees or 0,
            max_attendees=max_attendees or 0,
        )
        session.add(event)
        session.flush()

        if event_type == EventType.ONE_TIME:
            session.add(Term(
                event_id=event.id,
                date=event_date,
                start_time=start_time,
                end_time=end_time,
                attendees=[],
            ))

        logger.info("Event created → %s (uuid=%s, owner=%s)", event.id, event.uuid, owner_id)
        return event


_UPDATABLE_SCALARS = ("name", "place", "start_time", "end_time")


def update_event(
    engine: Engine,
    event_id: str,
    requester_id: str,
    **changes: Any,
) -> Event:
    """Apply *changes* to an event the requester manages.

    Omitted (or falsy) scalar fields keep their value.  Switching to
    ONE_TIME clears the rule; switching to RECURRING clears the date.
    """
    with get_session(engine) as session:
        event = load_event(session, event_id)
        ensure_manager(event, requester_id)

        event_type = EventType(changes.get("type") or event.type)
        new_date = changes.get("date")
        new_date = normalize_day(new_date) if new_date is not None else None
        rule = _recurrence_dict(changes.get("recurrence"))

        if "type" in changes and changes["type"]:
            _validate_type(event_type, new_date, rule)

        for key in _UPDATABLE_SCALARS:
            if changes.get(key):
                setattr(event, key, changes[key])
        event.type = event_type.value

        if changes.get("min_attendees") is not None:
            event.min_attendees = changes["min_attendees"]
        if changes.get("max_attendees") is not None:
            event.max_attendees = changes["max_attendees"]

        administrators = changes.get("administrators")
        event.administrators = _with_owner(
            administrators if administrators is not None else event.administrators,
            event.owner_id,
        )

        if event_type == EventType.ONE_TIME:
            event.date = new_date or event.date
            event.recurrence = None
        else:
            event.recurrence = rule or event.recurrence
            event.date = None

        session.flush()
        logger.info("Event updated → %s (by %s)", event.id, requester_id)
        return event


def delete_event(engine: Engine, event_id: str, requester_id: str) -> int:
    """Delete an event and all its terms. Returns the number of terms removed."""
    with get_session(engine) as session:
        event = load_event(session, event_id)
        ensure_owner(event, requester_id)

        result = session.execute(delete(Term).where(Term.event_id == event.id))
        session.delete(event)
        removed = result.rowcount or 0
        logger.info(
            "Event deleted → %s (uuid=%s, %d terms, by %s)",
            event.id, event.uuid, removed, requester_id,
        )
        return removed


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_event(engine: Engine, event_id: str) -> Event:
    with get_session(engine) as session:
        return load_event(session, event_id)


def get_event_with_active_terms(
    engine: Engine, uuid: str, *, today: date | None = None
) -> tuple[Event, list[Term]]:
    """Public event page: the event plus its terms from today onward."""
    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        active, _ = split_terms(load_terms(session, event.id), today)
        return event, active


def list_events(engine: Engine) -> list[Event]:
    with get_session(engine) as session:
        return list(session.scalars(select(Event).order_by(Event.created_at)).all())


def list_my_events(engine: Engine, owner_id: str) -> list[Event]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(Event).where(Event.owner_id == owner_id).order_by(Event.created_at)
        ).all())


def dashboard(engine: Engine, user_id: str) -> dict[str, list[Event]]:
    """Events the user manages and events the user attends.

    *Attending* means present in the event's attendee list or in any of
    its terms' attendee lists.
    """
    me = Attendee(id=user_id, kind=AttendeeKind.USER)
    with get_session(engine) as session:
        events = session.scalars(select(Event).order_by(Event.created_at)).all()
        term_rows = session.execute(select(Term.event_id, Term.attendees)).all()

        attending_ids = {
            row.event_id for row in term_rows
            if contains(parse_attendees(row.attendees), me)
        }
        managed = [e for e in events if is_manager(e, user_id)]
        attending = [
            e for e in events
            if e.id in attending_ids or contains(parse_attendees(e.attendees), me)
        ]
        return {"managed": managed, "attending": attending}
