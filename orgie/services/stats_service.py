"""
orgie.services.stats_service — Event Statistics Read Model
===========================================================

Loads an event, its archived terms and the users they reference, then
hands everything to :func:`orgie.engine.stats.compute_global_stats`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import Engine

from orgie.database.engine import get_session
from orgie.database.models import Event
from orgie.engine.archive import split_terms
from orgie.engine.attendees import parse_attendees
from orgie.engine.stats import (
    ParticipantStats,
    compute_global_stats,
    filled_stats_count,
    parse_teams,
    stats_highlights,
)
from orgie.services.event_service import load_event_by_uuid, load_terms
from orgie.services.user_service import load_users, user_ids_in


@dataclass(slots=True)
class EventStatistics:
    event: Event
    rows: list[ParticipantStats]
    highlights: dict[str, float]
    archived_total: int
    filled_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_uuid": self.event.uuid,
            "stats": [row.to_dict() for row in self.rows],
            "highlights": self.highlights,
            "archived_total": self.archived_total,
            "filled_count": self.filled_count,
        }


def event_statistics(
    engine: Engine,
    uuid: str,
    *,
    sort_key: str = "attendance",
    direction: str = "desc",
    today: date | None = None,
) -> EventStatistics:
    with get_session(engine) as session:
        event = load_event_by_uuid(session, uuid)
        _, archived = split_terms(load_terms(session, event.id), today)

        referenced = [parse_attendees(event.attendees)]
        for term in archived:
            referenced.append(parse_attendees(term.attendees))
            referenced.extend(team.members for team in parse_teams(term.statistics))
        users = load_users(session, user_ids_in(*referenced))

        rows = compute_global_stats(
            event, archived, users, sort_key=sort_key, direction=direction
        )
        return EventStatistics(
            event=event,
            rows=rows,
            highlights=stats_highlights(rows),
            archived_total=len(archived),
            filled_count=filled_stats_count(archived),
        )
