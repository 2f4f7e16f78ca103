"""
orgie.engine.recurrence — Recurrence Rules & Candidate Expansion
=================================================================

Dates are local calendar days: every datetime that enters the system is
truncated to its day before comparison.  Weekdays use the Sunday-based
numbering of the stored rules (0 = Sunday … 6 = Saturday), which differs
from :meth:`datetime.date.weekday` (0 = Monday).

Pure module: no DB access.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from orgie.database.models import RecurrenceFrequency

__all__ = [
    "Recurrence",
    "candidate_dates",
    "iter_days",
    "normalize_day",
    "sunday_weekday",
]


@dataclass(frozen=True, slots=True)
class Recurrence:
    """A stored recurrence rule."""

    frequency: RecurrenceFrequency
    week_days: tuple[int, ...] = ()
    month_days: tuple[int, ...] = field(default=())

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> Recurrence | None:
        if not raw:
            return None
        return cls(
            frequency=RecurrenceFrequency(raw.get("frequency") or RecurrenceFrequency.WEEKLY),
            week_days=tuple(int(d) for d in raw.get("week_days") or ()),
            month_days=tuple(int(d) for d in raw.get("month_days") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "week_days": list(self.week_days),
            "month_days": list(self.month_days),
        }


def normalize_day(value: date | datetime | str) -> date:
    """Truncate *value* to its calendar day.

    Strings are parsed as ISO-8601 dates or datetimes.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value) if "T" in value else date.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def sunday_weekday(day: date) -> int:
    """Weekday number with 0 = Sunday."""
    return (day.weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every day from *start* to *end* inclusive; nothing when start > end."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def candidate_dates(week_days: Iterable[int], start: date, end: date) -> list[date]:
    """Days in ``[start, end]`` whose Sunday-based weekday is in *week_days*."""
    wanted = set(week_days)
    return [day for day in iter_days(start, end) if sunday_weekday(day) in wanted]
