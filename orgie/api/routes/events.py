"""
orgie.api.routes.events — Event CRUD, public pages, guests & statistics
========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from orgie.api.deps import CurrentUser, get_engine
from orgie.api.schemas import (
    AttendanceIn,
    EventCreate,
    EventUpdate,
    GuestIn,
    referenced_user_ids,
    serialize_event,
    serialize_term,
)
from orgie.database.models import AttendeeKind, Event
from orgie.services import (
    attendance_service,
    event_service,
    guest_service,
    stats_service,
    user_service,
)

router = APIRouter(prefix="/events", tags=["events"])


def _events_payload(engine: Engine, events: list[Event]) -> list[dict]:
    users = user_service.lookup_users(engine, referenced_user_ids(events))
    return [serialize_event(e, users) for e in events]


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------
@router.get("")
def list_events(user: CurrentUser, engine: Engine = Depends(get_engine)):
    return {"events": _events_payload(engine, event_service.list_events(engine))}


@router.get("/my")
def list_my_events(user: CurrentUser, engine: Engine = Depends(get_engine)):
    events = event_service.list_my_events(engine, user["sub"])
    return {"events": _events_payload(engine, events)}


@router.get("/dashboard")
def dashboard(user: CurrentUser, engine: Engine = Depends(get_engine)):
    board = event_service.dashboard(engine, user["sub"])
    return {
        "managed": _events_payload(engine, board["managed"]),
        "attending": _events_payload(engine, board["attending"]),
    }


# ---------------------------------------------------------------------------
# Event CRUD
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_event(body: EventCreate, user: CurrentUser, engine: Engine = Depends(get_engine)):
    event = event_service.create_event(
        engine,
        user["sub"],
        name=body.name,
        place=body.place,
        type=body.type,
        start_time=body.start_time,
        end_time=body.end_time,
        date=body.date,
        recurrence=body.recurrence.to_rule() if body.recurrence else None,
        administrators=body.administrators,
        min_attendees=body.min_attendees,
        max_attendees=body.max_attendees,
    )
    return {"event": _events_payload(engine, [event])[0]}


@router.put("/{event_id}")
def update_event(
    event_id: str,
    body: EventUpdate,
    user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    changes = body.model_dump(exclude_unset=True, exclude={"recurrence"})
    if body.recurrence is not None:
        changes["recurrence"] = body.recurrence.to_rule()
    event = event_service.update_event(engine, event_id, user["sub"], **changes)
    return {"event": _events_payload(engine, [event])[0]}


@router.delete("/{event_id}")
def delete_event(event_id: str, user: CurrentUser, engine: Engine = Depends(get_engine)):
    removed = event_service.delete_event(engine, event_id, user["sub"])
    return {"message": "Event deleted successfully", "deleted_terms": removed}


@router.post("/{uuid}/attendance")
def toggle_event_attendance(
    uuid: str,
    user: CurrentUser,
    body: AttendanceIn | None = None,
    engine: Engine = Depends(get_engine),
):
    target = body.to_target() if body else None
    event, joined = attendance_service.toggle_event_attendance(engine, uuid, user["sub"], target)
    return {"event": _events_payload(engine, [event])[0], "joined": joined}


# ---------------------------------------------------------------------------
# Public page by uuid
# ---------------------------------------------------------------------------
@router.get("/uuid/{uuid}")
def get_event_by_uuid(uuid: str, engine: Engine = Depends(get_engine)):
    event, terms = event_service.get_event_with_active_terms(engine, uuid)
    users = user_service.lookup_users(engine, referenced_user_ids([event], terms))
    return {
        "event": serialize_event(event, users),
        "terms": [serialize_term(t, event, users) for t in terms],
    }


@router.get("/uuid/{uuid}/statistics")
def event_statistics(
    uuid: str,
    sort: str = Query("attendance"),
    direction: str = Query("desc"),
    engine: Engine = Depends(get_engine),
):
    result = stats_service.event_statistics(engine, uuid, sort_key=sort, direction=direction)
    return result.to_dict()


# ---------------------------------------------------------------------------
# Guests & attendee removal
# ---------------------------------------------------------------------------
@router.post("/uuid/{uuid}/guests", status_code=201)
def add_guest(uuid: str, body: GuestIn, user: CurrentUser, engine: Engine = Depends(get_engine)):
    event, guest = guest_service.add_guest(
        engine, uuid, body.first_name, body.last_name, user["sub"]
    )
    return {
        "guest": {**guest.to_dict(), "name": guest.full_name},
        "event": _events_payload(engine, [event])[0],
    }


@router.delete("/uuid/{uuid}/attendees/{attendee_id}")
def remove_attendee(
    uuid: str,
    attendee_id: str,
    user: CurrentUser,
    kind: AttendeeKind = Query(AttendeeKind.USER),
    engine: Engine = Depends(get_engine),
):
    touched = guest_service.remove_attendee(engine, uuid, attendee_id, kind, user["sub"])
    return {"message": "Attendee removed", "terms_updated": touched}
