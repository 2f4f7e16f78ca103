"""
orgie.services.term_service — Term Generation, Archive & Team Tallies
======================================================================

* **Generation** expands a recurring event's weekday rule over a date
  range and inserts one term per matching day.  Days that already have a
  term are skipped, never overwritten, so re-running a range is a no-op.
  Inserts go through a SAVEPOINT each so a concurrent generator hitting
  ``uq_terms_event_date`` turns into a skip instead of a failed request.
* **Archive** lists past terms and bulk-deletes them; the delete range
  must end before today so active terms can't be removed by accident.
* **Team tallies** are stored per term as entered; outcomes are derived
  at read time by :mod:`orgie.engine.stats`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import date, datetime

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orgie.database.engine import get_session
from orgie.database.models import Event, EventType, Term
from orgie.engine.archive import split_terms, today as local_today
from orgie.engine.permissions import ensure_manager
from orgie.engine.recurrence import Recurrence, candidate_dates, normalize_day
from orgie.engine.stats import TeamTally
from orgie.errors import InvalidInput, InvalidRange, InvalidState, NotFound
from orgie.services.event_service import load_event, load_event_by_uuid, load_terms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GenerationResult:
    inserted: int = 0
    skipped: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def load_term(session: Session, term_id: str) -> Term:
    term = session.get(Term, term_id)
    if term is None:
        raise NotFound("Term not found")
    return term


def get_term(engine: Engine, term_id: str) -> tuple[Term, Event]:
    """A term together with its owning event."""
    with get_session(engine) as session:
        term = load_term(session, term_id)
        return term, load_event(session, term.event_id)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------
def generate_terms(
    engine: Engine,
    event_id: str,
    start_date: date | datetime | str,
    end_date: date | datetime | str,
    requester_id: str,
    *,
    max_days: int | None = None,
) -> GenerationResult:
    """Create terms for every rule-matching day in ``[start_date, end_date]``.

    Raises
    ------
    NotFound       unknown event
    Unauthorized   requester is not owner / administrator
    InvalidState   event is not RECURRING or its rule has no weekdays
    InvalidRange   range is wider than *max_days*
    """
    start = normalize_day(start_date)
    end = normalize_day(end_date)

    with get_session(engine) as session:
        event = load_event(session, event_id)
        ensure_manager(event, requester_id)

        rule = Recurrence.from_dict(event.recurrence)
        if event.type != EventType.RECURRING or rule is None or not rule.week_days:
            raise InvalidState("Event is not recurring or missing weekDays")

        if max_days is not None and start <= end and (end - start).days + 1 > max_days:
            raise InvalidRange(f"Date range may span at most {max_days} days")

        candidates = candidate_dates(rule.week_days, start, end)
        if not candidates:
            logger.info(
                "No terms to generate for event %s (%s..%s, by %s)",
                event.id, start, end, requester_id,
            )
            return GenerationResult()

        existing = set(session.scalars(
            select(Term.date).where(Term.event_id == event.id, Term.date.in_(candidates))
        ).all())

        inserted = 0
        for day in candidates:
            if day in existing:
                continue
            try:
                with session.begin_nested():  # SAVEPOINT
                    session.add(Term(
                        event_id=event.id,
                        date=day,
                        start_time=event.start_time,
                        end_time=event.end_time,
                        attendees=[],
                    ))
                    session.flush()
                inserted += 1
            except IntegrityError:
                # Another request created this day between our read and write.
                logger.info("Term for event %s on %s already exists, skipping", event.id, day)

        result = GenerationResult(
            inserted=inserted,
            skipped=len(candidates) - inserted,
            total=len(candidates),
        )
        logger.info(
            "Terms generated for event %s: inserted=%d skipped=%d total=%d (by %s)",
            event.id, result.inserted, result.skipped, result.total, requester_id,
        )
        return result


def delete_term(engine: Engine, term_id: str, requester_id: str) -> None:
    with get_session(engine) as session:
        term = load_term(session, term_id)
        event = load_event(session, term.event_id)
        ensure_manager(event, requester_id)
        session.delete(term)
        logger.info("Term deleted → %s (event %s, by %s)", term_id, event.id, requester_id)


# ---------------------------------------------------------------------------
# Active / archived views
# ---------------------------------------------------------------------------
def list_active_terms(
    engine: Engine, uuid: str, *, today: date | None = None
) -> tuple[Event, list[Term]]:
    """Terms dated today or later, ascending."""
    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        active, _ = split_terms(load_terms(session, event.id), today)
        return event, active


def list_archived_terms(
    engine: Engine, uuid: str, *, today: date | None = None
) -> tuple[Event, list[Term]]:
    """Terms dated before today, most recent first."""
    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        _, archived = split_terms(load_terms(session, event.id), today)
        return event, archived


def bulk_delete_archived(
    engine: Engine,
    uuid: str,
    start_date: date | datetime | str,
    end_date: date | datetime | str,
    requester_id: str,
    *,
    today: date | None = None,
) -> int:
    """Delete every term of the event dated within ``[start_date, end_date]``.

    *end_date* must be strictly before today.  Returns the number deleted.
    """
    start = normalize_day(start_date)
    end = normalize_day(end_date)

    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        ensure_manager(event, requester_id)

        if end >= (today or local_today()):
            raise InvalidRange("End date must be in the past")

        result = session.execute(
            delete(Term).where(
                Term.event_id == event.id,
                Term.date >= start,
                Term.date <= end,
            )
        )
        deleted = result.rowcount or 0
        logger.info(
            "Archived terms bulk deleted for event %s: %d (%s..%s, by %s)",
            event.id, deleted, start, end, requester_id,
        )
        return deleted


# ---------------------------------------------------------------------------
# Team tallies
# ---------------------------------------------------------------------------
def save_statistics(
    engine: Engine,
    term_id: str,
    teams: Iterable[TeamTally],
    requester_id: str,
) -> Term:
    """Replace the term's team tallies (owner / administrator only)."""
    teams = list(teams)
    for team in teams:
        if min(team.wins, team.draws, team.losses) < 0:
            raise InvalidInput(f"Team {team.name!r}: tallies must be non-negative")

    with get_session(engine) as session:
        term = load_term(session, term_id)
        event = load_event(session, term.event_id)
        ensure_manager(event, requester_id)

        term.statistics = {"teams": [team.to_dict() for team in teams]}
        session.flush()
        logger.info(
            "Statistics saved for term %s: %d teams (by %s)",
            term.id, len(teams), requester_id,
        )
        return term
