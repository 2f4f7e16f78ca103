"""
orgie.engine.stats — Team Outcomes & Cross-Term Participant Statistics
=======================================================================

Pure calculation over archived terms.  No DB I/O inside the engine.

Each term may carry manually entered team tallies (wins / draws / losses
for that session).  A single outcome per team is inferred from them:

1. Only teams that played (``wins + draws + losses > 0``) count.
2. Rank by wins desc → draws desc → losses asc.
3. Every team matching the best ``(wins, draws, losses)`` exactly is a
   top team.  One top team → WIN, several → DRAW for each of them.
4. Every other played team → LOSS.

Members collect the outcome only if they are in that term's attendee
list, so stale team membership never leaks into the statistics.

Pipeline::

    seed (event attendees + guests) → attendance per term → outcomes per term
        → percentages → sort
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Protocol

from orgie.database.models import AttendeeKind
from orgie.engine.attendees import (
    Attendee,
    Guest,
    NamedUser,
    display_name,
    parse_attendees,
    parse_guests,
)
from orgie.errors import InvalidInput

logger = logging.getLogger(__name__)

__all__ = [
    "Outcome",
    "ParticipantStats",
    "SORT_KEYS",
    "TeamTally",
    "compute_global_stats",
    "filled_stats_count",
    "parse_teams",
    "resolve_sort_key",
    "sort_stats",
    "strip_member",
    "stats_highlights",
    "term_outcomes",
]


class Outcome(enum.StrEnum):
    WIN = "WIN"
    DRAW = "DRAW"
    LOSS = "LOSS"


# Accepted sort keys → ParticipantStats attribute (camelCase kept for old clients)
SORT_KEYS: dict[str, str] = {
    "attendance": "attendance",
    "attendance_pct": "attendance_pct",
    "attendancePct": "attendance_pct",
    "wins": "wins",
    "draws": "draws",
    "losses": "losses",
    "win_pct": "win_pct",
    "winPct": "win_pct",
    "loss_pct": "loss_pct",
    "lossPct": "loss_pct",
    "name": "name",
}


class TermLike(Protocol):
    attendees: Sequence[Any]
    statistics: Mapping[str, Any] | None


class EventLike(Protocol):
    attendees: Sequence[Any]
    guests: Sequence[Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Team tallies
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TeamTally:
    """One team's manually entered result for a single term."""

    name: str
    members: tuple[Attendee, ...] = ()
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def played(self) -> int:
        return self.wins + self.draws + self.losses

    @property
    def record(self) -> tuple[int, int, int]:
        return self.wins, self.draws, self.losses

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> TeamTally:
        return cls(
            name=raw.get("name", ""),
            members=tuple(parse_attendees(raw.get("members"))),
            wins=int(raw.get("wins") or 0),
            draws=int(raw.get("draws") or 0),
            losses=int(raw.get("losses") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "members": [m.to_dict() for m in self.members],
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
        }


def parse_teams(statistics: Mapping[str, Any] | None) -> list[TeamTally]:
    if not statistics:
        return []
    return [TeamTally.from_dict(raw) for raw in statistics.get("teams") or ()]


def strip_member(
    statistics: Mapping[str, Any] | None, target: Attendee
) -> dict[str, Any] | None:
    """Statistics with *target* dropped from every team, or ``None`` if absent."""
    teams = parse_teams(statistics)
    if not any(target in team.members for team in teams):
        return None
    stripped = [
        replace(team, members=tuple(m for m in team.members if m != target))
        for team in teams
    ]
    return {**statistics, "teams": [team.to_dict() for team in stripped]}


def term_outcomes(teams: Iterable[TeamTally]) -> list[tuple[TeamTally, Outcome]]:
    """Outcome of every team that played, in input order.

    Teams with an all-zero tally are left out entirely.
    """
    played = [team for team in teams if team.played > 0]
    if not played:
        return []

    ranked = sorted(played, key=lambda t: (-t.wins, -t.draws, t.losses))
    best = ranked[0].record
    top_count = sum(1 for team in played if team.record == best)
    top_outcome = Outcome.WIN if top_count == 1 else Outcome.DRAW

    return [
        (team, top_outcome if team.record == best else Outcome.LOSS)
        for team in played
    ]


# ---------------------------------------------------------------------------
# Participant statistics
# ---------------------------------------------------------------------------
@dataclass
class ParticipantStats:
    """Aggregated record for one participant across archived terms."""

    id: str
    kind: AttendeeKind
    name: str
    attendance: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    total_games: int = 0
    attendance_pct: float = 0.0
    win_pct: float = 0.0
    loss_pct: float = 0.0

    def record(self, outcome: Outcome) -> None:
        match outcome:
            case Outcome.WIN:
                self.wins += 1
            case Outcome.DRAW:
                self.draws += 1
            case Outcome.LOSS:
                self.losses += 1
        self.total_games += 1

    def finalize(self, total_terms: int) -> None:
        self.attendance_pct = self.attendance / total_terms * 100 if total_terms else 0.0
        if self.total_games:
            self.win_pct = self.wins / self.total_games * 100
            self.loss_pct = self.losses / self.total_games * 100
        else:
            self.win_pct = 0.0
            self.loss_pct = 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class _Aggregator:
    users: Mapping[str, NamedUser]
    guests: list[Guest]
    rows: dict[Attendee, ParticipantStats] = field(default_factory=dict)

    def ensure(self, attendee: Attendee) -> ParticipantStats:
        row = self.rows.get(attendee)
        if row is None:
            row = ParticipantStats(
                id=attendee.id,
                kind=attendee.kind,
                name=display_name(attendee, self.users, self.guests),
            )
            self.rows[attendee] = row
        return row


def resolve_sort_key(sort_key: str) -> str:
    try:
        return SORT_KEYS[sort_key]
    except KeyError:
        raise InvalidInput(
            f"Unknown sort key {sort_key!r}; expected one of {sorted(set(SORT_KEYS.values()))}"
        ) from None


def sort_stats(
    stats: list[ParticipantStats], sort_key: str = "attendance", direction: str = "desc"
) -> list[ParticipantStats]:
    """Stable sort; ties keep their aggregation order."""
    if direction not in ("asc", "desc"):
        raise InvalidInput(f"Unknown sort direction {direction!r}; expected 'asc' or 'desc'")
    attr = resolve_sort_key(sort_key)
    return sorted(stats, key=lambda s: getattr(s, attr), reverse=direction == "desc")


def compute_global_stats(
    event: EventLike,
    archived_terms: Sequence[TermLike],
    users: Mapping[str, NamedUser] | None = None,
    *,
    sort_key: str = "attendance",
    direction: str = "desc",
) -> list[ParticipantStats]:
    """Aggregate attendance and match outcomes for every participant.

    Parameters
    ----------
    event : the owning event (attendees + guest registry seed the table)
    archived_terms : past terms of that event
    users : user registry for display names, keyed by user id
    sort_key, direction : see :data:`SORT_KEYS`; ``"asc"`` or ``"desc"``
    """
    agg = _Aggregator(users=users or {}, guests=parse_guests(event.guests))

    # 1. Seed: current participants appear even with no history
    for attendee in parse_attendees(event.attendees):
        agg.ensure(attendee)
    for guest in agg.guests:
        agg.ensure(guest.attendee)

    for term in archived_terms:
        term_attendees = parse_attendees(term.attendees)
        present = set(term_attendees)

        # 2. Attendance
        for attendee in term_attendees:
            agg.ensure(attendee).attendance += 1

        # 3. Outcomes, credited only to members who attended
        for team, outcome in term_outcomes(parse_teams(term.statistics)):
            for member in team.members:
                if member in present:
                    agg.rows[member].record(outcome)

    total_terms = len(archived_terms)
    rows = list(agg.rows.values())
    for row in rows:
        row.finalize(total_terms)

    logger.debug(
        "Computed stats for %d participants over %d archived terms",
        len(rows), total_terms,
    )
    return sort_stats(rows, sort_key, direction)


def stats_highlights(stats: Sequence[ParticipantStats]) -> dict[str, float]:
    """Column maxima used to highlight leaders.

    Win/loss maxima only consider participants who played at least one
    game; ``-1`` means nobody qualifies.
    """
    if not stats:
        return {
            "max_attendance": -1,
            "max_wins": -1,
            "max_losses": -1,
            "max_win_pct": -1,
            "max_loss_pct": -1,
        }
    played = [s for s in stats if s.total_games > 0]
    return {
        "max_attendance": max(s.attendance for s in stats),
        "max_wins": max((s.wins for s in played), default=-1),
        "max_losses": max((s.losses for s in played), default=-1),
        "max_win_pct": max((s.win_pct for s in played), default=-1),
        "max_loss_pct": max((s.loss_pct for s in played), default=-1),
    }


def filled_stats_count(terms: Iterable[TermLike]) -> int:
    """Terms that carry at least one team tally."""
    return sum(1 for term in terms if parse_teams(term.statistics))
