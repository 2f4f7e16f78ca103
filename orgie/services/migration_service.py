"""
orgie.services.migration_service — One-Off Data Repairs
========================================================

Idempotent fix-ups for rows written by older releases:

* :func:`migrate_legacy_attendees` — attendee lists that still hold bare
  user ids are rewritten as ``{"id": ..., "kind": "USER"}`` entries.
* :func:`backfill_event_uuids` — events without a public uuid get one.

Both are safe to re-run; rows already in the current shape are left
untouched and not counted.

Run with::

    python -m orgie.services.migration_service
"""

from __future__ import annotations

import logging
from typing import Any

from dotenv import load_dotenv
from sqlalchemy import Engine, or_, select

from orgie.database.engine import create_db_engine, get_session, init_db
from orgie.database.models import Event, Term, new_id
from orgie.engine.attendees import dump_attendees, parse_attendees
from orgie.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _is_current(raw: list[Any] | None) -> bool:
    return all(isinstance(item, dict) and item.get("kind") for item in raw or ())


def migrate_legacy_attendees(engine: Engine) -> dict[str, int]:
    """Normalize event and term attendee lists. Returns rows changed per table."""
    counts = {"events": 0, "terms": 0}
    with get_session(engine) as session:
        for event in session.scalars(select(Event)):
            if not _is_current(event.attendees):
                event.attendees = dump_attendees(parse_attendees(event.attendees))
                counts["events"] += 1
        for term in session.scalars(select(Term)):
            if not _is_current(term.attendees):
                term.attendees = dump_attendees(parse_attendees(term.attendees))
                counts["terms"] += 1

    logger.info(
        "Legacy attendees migrated: %d events, %d terms",
        counts["events"], counts["terms"],
    )
    return counts


def backfill_event_uuids(engine: Engine) -> int:
    """Assign a uuid to every event missing one. Returns the number updated."""
    with get_session(engine) as session:
        events = session.scalars(
            select(Event).where(or_(Event.uuid.is_(None), Event.uuid == ""))
        ).all()
        for event in events:
            event.uuid = new_id()
            logger.info("Event %s assigned uuid %s", event.id, event.uuid)

    logger.info("Event uuid backfill complete: %d updated", len(events))
    return len(events)


def main() -> None:
    load_dotenv()
    configure_logging()

    engine = create_db_engine()
    init_db(engine)

    migrate_legacy_attendees(engine)
    backfill_event_uuids(engine)


if __name__ == "__main__":
    main()
