"""
orgie.api.schemas — Request Models & Response Serializers
==========================================================

Request bodies accept both camelCase (what the web client sends) and
snake_case field names.  Responses are snake_case.

Attendee lists in responses carry a resolved ``name`` next to the stored
``{id, kind}``; the stored shape never changes.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from orgie.database.models import AttendeeKind, Event, EventType, RecurrenceFrequency, Term, User
from orgie.engine.attendees import Attendee, parse_attendees, parse_guests
from orgie.engine.recurrence import Recurrence
from orgie.engine.stats import TeamTally, parse_teams, term_outcomes
from orgie.services.user_service import describe_attendees, public_user

HHMM_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"

Name = Annotated[str, Field(min_length=1, max_length=50)]
Clock = Annotated[str, Field(pattern=HHMM_PATTERN)]
WeekDay = Annotated[int, Field(ge=0, le=6)]
MonthDay = Annotated[int, Field(ge=1, le=31)]
Tally = Annotated[int, Field(ge=0)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------
class RecurrenceIn(CamelModel):
    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    week_days: list[WeekDay] = Field(default_factory=list)
    month_days: list[MonthDay] = Field(default_factory=list)

    def to_rule(self) -> Recurrence:
        return Recurrence(
            frequency=self.frequency,
            week_days=tuple(self.week_days),
            month_days=tuple(self.month_days),
        )


class EventCreate(CamelModel):
    name: Name
    place: Annotated[str, Field(max_length=50)] | None = None
    type: EventType = EventType.ONE_TIME
    start_time: Clock
    end_time: Clock
    date: dt.date | dt.datetime | None = None
    recurrence: RecurrenceIn | None = None
    administrators: list[str] = Field(default_factory=list)
    min_attendees: Tally = 0
    max_attendees: Tally = 0


class EventUpdate(CamelModel):
    name: Name | None = None
    place: Annotated[str, Field(max_length=50)] | None = None
    type: EventType | None = None
    start_time: Clock | None = None
    end_time: Clock | None = None
    date: dt.date | dt.datetime | None = None
    recurrence: RecurrenceIn | None = None
    administrators: list[str] | None = None
    min_attendees: Tally | None = None
    max_attendees: Tally | None = None


class GenerateTermsIn(CamelModel):
    event_id: str
    start_date: dt.date | dt.datetime
    end_date: dt.date | dt.datetime


class AttendanceIn(CamelModel):
    user_id: str | None = None
    kind: AttendeeKind | None = None

    def to_target(self) -> Attendee | None:
        if self.user_id is None:
            return None
        return Attendee(id=self.user_id, kind=self.kind or AttendeeKind.USER)


class DateRangeIn(CamelModel):
    start_date: dt.date | dt.datetime
    end_date: dt.date | dt.datetime


class AttendeeIn(CamelModel):
    id: str
    kind: AttendeeKind = AttendeeKind.USER


class TeamIn(CamelModel):
    name: Annotated[str, Field(max_length=50)] = ""
    members: list[AttendeeIn] = Field(default_factory=list)
    wins: Tally = 0
    draws: Tally = 0
    losses: Tally = 0

    def to_tally(self) -> TeamTally:
        return TeamTally(
            name=self.name,
            members=tuple(Attendee(id=m.id, kind=m.kind) for m in self.members),
            wins=self.wins,
            draws=self.draws,
            losses=self.losses,
        )


class TeamsIn(CamelModel):
    teams: list[TeamIn] = Field(default_factory=list)


class StatisticsIn(CamelModel):
    statistics: TeamsIn


class GuestIn(CamelModel):
    first_name: Name
    last_name: Name


class ProfileUpdate(CamelModel):
    first_name: Name | None = None
    last_name: Name | None = None
    nickname: Annotated[str, Field(max_length=30)] | None = None
    prefer_nickname: bool | None = None


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def referenced_user_ids(events: Iterable[Event] = (), terms: Iterable[Term] = ()) -> set[str]:
    """Every user id an event/term payload will need a name for."""
    ids: set[str] = set()
    for event in events:
        ids.add(event.owner_id)
        ids.update(event.administrators or ())
        ids.update(a.id for a in parse_attendees(event.attendees) if a.kind == AttendeeKind.USER)
    for term in terms:
        ids.update(a.id for a in parse_attendees(term.attendees) if a.kind == AttendeeKind.USER)
        for team in parse_teams(term.statistics):
            ids.update(m.id for m in team.members if m.kind == AttendeeKind.USER)
    return ids


def _iso(value: dt.date | dt.datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_event(event: Event, users: dict[str, User]) -> dict[str, Any]:
    guests = parse_guests(event.guests)
    return {
        "id": event.id,
        "uuid": event.uuid,
        "name": event.name,
        "place": event.place,
        "owner": public_user(users.get(event.owner_id)) or {"id": event.owner_id},
        "type": event.type,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "date": _iso(event.date),
        "recurrence": event.recurrence,
        "administrators": list(event.administrators or ()),
        "attendees": describe_attendees(parse_attendees(event.attendees), users, event.guests),
        "guests": [{**g.to_dict(), "name": g.full_name} for g in guests],
        "min_attendees": event.min_attendees,
        "max_attendees": event.max_attendees,
        "created_at": _iso(event.created_at),
    }


def serialize_term(term: Term, event: Event, users: dict[str, User]) -> dict[str, Any]:
    guests_raw = event.guests
    teams = parse_teams(term.statistics)
    outcomes = {id(team): outcome.value for team, outcome in term_outcomes(teams)}
    return {
        "id": term.id,
        "event_id": term.event_id,
        "date": _iso(term.date),
        "start_time": term.start_time,
        "end_time": term.end_time,
        "attendees": describe_attendees(parse_attendees(term.attendees), users, guests_raw),
        "statistics": {
            "teams": [
                {
                    **team.to_dict(),
                    "members": describe_attendees(team.members, users, guests_raw),
                    "outcome": outcomes.get(id(team)),
                }
                for team in teams
            ],
        } if teams else None,
    }
