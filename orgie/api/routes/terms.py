"""
orgie.api.routes.terms — Term generation, attendance, archive & team tallies
=============================================================================

Registered before :mod:`orgie.api.routes.events` so ``/events/terms``
is never captured by ``/events/{event_id}``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from orgie.api.deps import CurrentUser, get_config, get_engine
from orgie.api.schemas import (
    AttendanceIn,
    DateRangeIn,
    GenerateTermsIn,
    StatisticsIn,
    referenced_user_ids,
    serialize_term,
)
from orgie.config import OrgieConfig
from orgie.services import attendance_service, term_service, user_service

router = APIRouter(prefix="/events", tags=["terms"])


# ---------------------------------------------------------------------------
# Terms
# ---------------------------------------------------------------------------
@router.post("/terms")
def generate_terms(
    body: GenerateTermsIn,
    user: CurrentUser,
    engine: Engine = Depends(get_engine),
    cfg: OrgieConfig = Depends(get_config),
):
    result = term_service.generate_terms(
        engine,
        body.event_id,
        body.start_date,
        body.end_date,
        user["sub"],
        max_days=cfg.max_generation_days,
    )
    return result.to_dict()


@router.post("/terms/{term_id}/attendance")
def toggle_term_attendance(
    term_id: str,
    user: CurrentUser,
    body: AttendanceIn | None = None,
    engine: Engine = Depends(get_engine),
):
    target = body.to_target() if body else None
    term, joined = attendance_service.toggle_term_attendance(engine, term_id, user["sub"], target)
    _, event = term_service.get_term(engine, term.id)
    users = user_service.lookup_users(engine, referenced_user_ids([event], [term]))
    return {"term": serialize_term(term, event, users), "joined": joined}


@router.delete("/terms/{term_id}")
def delete_term(term_id: str, user: CurrentUser, engine: Engine = Depends(get_engine)):
    term_service.delete_term(engine, term_id, user["sub"])
    return {"message": "Term deleted successfully"}


@router.post("/terms/{term_id}/statistics")
def save_statistics(
    term_id: str,
    body: StatisticsIn,
    user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    term = term_service.save_statistics(
        engine,
        term_id,
        [team.to_tally() for team in body.statistics.teams],
        user["sub"],
    )
    _, event = term_service.get_term(engine, term.id)
    users = user_service.lookup_users(engine, referenced_user_ids([event], [term]))
    return {"term": serialize_term(term, event, users)}


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------
@router.get("/uuid/{uuid}/archived")
def list_archived(uuid: str, engine: Engine = Depends(get_engine)):
    event, terms = term_service.list_archived_terms(engine, uuid)
    users = user_service.lookup_users(engine, referenced_user_ids([event], terms))
    return {"terms": [serialize_term(t, event, users) for t in terms]}


@router.delete("/uuid/{uuid}/archived")
def delete_archived(
    uuid: str,
    body: DateRangeIn,
    user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    deleted = term_service.bulk_delete_archived(
        engine, uuid, body.start_date, body.end_date, user["sub"]
    )
    return {"deletedCount": deleted}
